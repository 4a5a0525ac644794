import logging
import threading
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Union

from mxf2proxy.domain.events import JobQueued
from mxf2proxy.domain.models import Job
from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.infrastructure.file_scanner import FileScanner
from mxf2proxy.pipeline.batch import BatchOrchestrator
from mxf2proxy.pipeline.counter import OutstandingClips


def canonicalize(source: Union[str, Path]) -> Path:
    return Path(source).expanduser().resolve()


class JobQueueManager:
    """FIFO of submitted sources; exactly one batch runs at a time.

    submit() never blocks: the active batch runs on a worker thread, and when
    it ends the next queued job is started immediately.
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        file_scanner: FileScanner,
        counter: OutstandingClips,
        event_bus: EventBus,
    ):
        self.orchestrator = orchestrator
        self.file_scanner = file_scanner
        self.counter = counter
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

        self._queue: Deque[Job] = deque()
        self._active: Optional[Job] = None
        self._worker: Optional[threading.Thread] = None
        self._shutdown_requested = False
        self._cond = threading.Condition()

    @property
    def outstanding_clips(self) -> int:
        return self.counter.value

    @property
    def active_source(self) -> Optional[Path]:
        with self._cond:
            return self._active.source if self._active else None

    @property
    def queued_sources(self) -> List[Path]:
        with self._cond:
            return [job.source for job in self._queue]

    @property
    def is_idle(self) -> bool:
        with self._cond:
            return self._active is None and not self._queue

    def submit(self, source: Union[str, Path]) -> bool:
        """Enqueues a file or folder; returns False for an active/queued duplicate."""
        path = canonicalize(source)
        with self._cond:
            if self._shutdown_requested:
                self.logger.debug(f"Ignoring submission after shutdown: {path}")
                return False
            if self._is_duplicate(path):
                self.logger.debug(f"Ignoring duplicate submission: {path}")
                return False
            estimate = self.file_scanner.count(path)
            self._queue.append(Job(source=path, remaining_clips=estimate))
            self.counter.add(estimate)

        self.logger.info(f"Job queued: {path} ({estimate} clips)")
        self.event_bus.publish(JobQueued(source=path, clip_estimate=estimate))
        self._advance()
        return True

    def shutdown(self):
        """Drops queued jobs and stops the active batch before its next clip.

        The encoder already running is left to finish; use join() to wait for it.
        """
        with self._cond:
            self._shutdown_requested = True
            dropped = list(self._queue)
            self._queue.clear()
            self._cond.notify_all()
        self.orchestrator.request_shutdown()
        for job in dropped:
            self.logger.info(f"Job dropped (shutdown): {job.source}")

    def join(self, timeout: Optional[float] = None):
        with self._cond:
            worker = self._worker
        if worker is not None:
            worker.join(timeout)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._active is None and not self._queue, timeout)

    def _is_duplicate(self, path: Path) -> bool:
        if self._active is not None and self._active.source == path:
            return True
        return any(job.source == path for job in self._queue)

    def _advance(self):
        with self._cond:
            if self._active is not None:
                return
            if self._shutdown_requested or not self._queue:
                self._cond.notify_all()
                return
            job = self._queue.popleft()
            self._active = job
            self._worker = threading.Thread(target=self._run_job, args=(job,), name=f"batch-{job.source.name}")
            self._worker.start()

    def _run_job(self, job: Job):
        try:
            result = self.orchestrator.run(job)
            self.logger.info(f"Job finished: {job.source} result={result.value}")
        except Exception as e:
            self.logger.error(f"Exception processing {job.source}: {e}")
        finally:
            with self._cond:
                self._active = None
                self._cond.notify_all()
            self._advance()
