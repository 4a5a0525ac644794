"""Per-clip conversion state machine.

CheckCollision -> (Prompt) -> Prepass? -> Encode -> Remux? -> Cleanup -> Done

Every terminal path except CANCELLED decrements the outstanding counter
exactly once. Encoder failures are terminal for the clip only; the caller
always moves on to the next clip.
"""

import logging
import time
from typing import Optional

from mxf2proxy.config.models import GeneralConfig
from mxf2proxy.domain.collaborators import PrepassService
from mxf2proxy.domain.events import ClipFinished
from mxf2proxy.domain.models import ClipOutcome, ConversionRequest, DuplicateVerdict, Job
from mxf2proxy.infrastructure.conversion_log import ConversionLog
from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.infrastructure.housekeeping import HousekeepingService
from mxf2proxy.infrastructure.subprocess_runner import SubprocessRunner
from mxf2proxy.pipeline.command_builder import ClipPlan, command_as_string, plan_conversion
from mxf2proxy.pipeline.counter import OutstandingClips
from mxf2proxy.pipeline.negotiator import DuplicateNegotiator


class ClipConverter:
    """Drives one ConversionRequest to a terminal ClipOutcome."""

    def __init__(
        self,
        config: GeneralConfig,
        runner: SubprocessRunner,
        prepass: PrepassService,
        negotiator: DuplicateNegotiator,
        counter: OutstandingClips,
        event_bus: EventBus,
        housekeeper: Optional[HousekeepingService] = None,
    ):
        self.config = config
        self.runner = runner
        self.prepass = prepass
        self.negotiator = negotiator
        self.counter = counter
        self.event_bus = event_bus
        self.housekeeper = housekeeper or HousekeepingService()
        self.logger = logging.getLogger(__name__)

    def convert(
        self,
        request: ConversionRequest,
        job: Job,
        log: ConversionLog,
        force_overwrite: bool = False,
    ) -> ClipOutcome:
        filename = request.source.name

        # 1. Collision check
        if request.destination.exists() and not force_overwrite and not job.overwrite_all:
            if job.skip_all:
                log.write(f"SKIPPED (exists): {filename}")
                return self._finish(request, job, ClipOutcome.SKIPPED)

            verdict = self.negotiator.resolve(job, request.destination)
            if verdict in (DuplicateVerdict.OVERWRITE, DuplicateVerdict.OVERWRITE_ALL):
                log.write(f"Overwriting existing output: {request.destination.name}")
                return self.convert(request, job, log, force_overwrite=True)
            if verdict in (DuplicateVerdict.SKIP, DuplicateVerdict.SKIP_ALL):
                log.write(f"SKIPPED (exists): {filename}")
                return self._finish(request, job, ClipOutcome.SKIPPED)
            # Cancel ends the whole batch; the counter is zeroed, not decremented.
            log.write(f"Batch cancelled at {filename}")
            self.counter.reset()
            self.event_bus.publish(ClipFinished(source=request.source, outcome=ClipOutcome.CANCELLED))
            return ClipOutcome.CANCELLED

        force = force_overwrite or job.overwrite_all
        plan = plan_conversion(request, force_overwrite=force, prepass_height=self.prepass.frame_height)
        log.write(f"Using ffmpeg at: {self.config.ffmpeg_path}")
        log.write(
            f"Converting {filename} -> {request.destination.name} "
            f"(encoder={request.encoder.value}, watermark={request.watermark.mode.value}, "
            f"lut={request.lut_path.name if request.lut_path else 'none'})"
        )

        # Leftovers from an earlier crash would make ffmpeg stop at its overwrite prompt.
        self.housekeeper.remove_intermediates(plan.intermediates)
        start_time = time.monotonic()
        try:
            outcome = self._run_plan(request, plan, log)
        finally:
            self.housekeeper.remove_intermediates(plan.intermediates)

        elapsed = time.monotonic() - start_time
        self.logger.info(f"CLIP_END: {filename} status={outcome.value} elapsed={elapsed:.2f}s")
        return self._finish(request, job, outcome)

    def _run_plan(self, request: ConversionRequest, plan: ClipPlan, log: ConversionLog) -> ClipOutcome:
        filename = request.source.name

        # 2. Optional 8-bit pre-pass
        if plan.prepass_output is not None:
            log.write(f"Step 1: pre-pass converting {filename}")
            if not self.prepass.convert(request.source, plan.prepass_output, log):
                log.write(f"FAILED (pre-pass): {filename}")
                return ClipOutcome.FAILED
            log.write(f"Step 1 SUCCESS. Step 2: encoding {filename}")

        # 3. Encode, then remux for the broadcast container
        total_steps = len(plan.invocations)
        for step, invocation in enumerate(plan.invocations, start=1):
            if self.config.debug:
                self.logger.debug(f"FFMPEG_CMD: {command_as_string(self.config.ffmpeg_path, invocation)}")
            status = self.runner.run(self.config.ffmpeg_path, invocation.args, log.path)
            if status != 0:
                suffix = f" (step {step})" if total_steps > 1 else ""
                log.write(f"FAILED: {filename}{suffix} exit={status}")
                return ClipOutcome.FAILED

        log.write(f"SUCCESS: {filename} -> {request.destination.name}")
        return ClipOutcome.COMPLETED

    def _finish(self, request: ConversionRequest, job: Job, outcome: ClipOutcome) -> ClipOutcome:
        job.clip_done()
        self.counter.decrement()
        output_path = request.destination if outcome == ClipOutcome.COMPLETED else None
        self.event_bus.publish(ClipFinished(source=request.source, outcome=outcome, output_path=output_path))
        return outcome
