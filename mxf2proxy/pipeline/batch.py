"""Batch pipeline orchestrator.

Turns one Job into an ordered list of ConversionRequests against a concrete
destination directory and runs them strictly one after another:

1. reset the batch-wide overwrite/skip flags and read a settings snapshot
2. enumerate member clips (sorted by filename)
3. resolve the destination through the UI collaborator
4. create the destination directory
5. run the per-clip state machine for each clip, in order
"""

import logging
from pathlib import Path
from typing import List, Optional

from mxf2proxy.config.models import GeneralConfig
from mxf2proxy.config.settings_store import SettingsStore
from mxf2proxy.domain.collaborators import Prompter
from mxf2proxy.domain.events import BatchFinished, BatchStarted, ClipStarted, StatusMessage
from mxf2proxy.domain.models import (
    BatchResult,
    ClipOutcome,
    ConversionRequest,
    DestinationDecision,
    Job,
    OutputFormat,
    Watermark,
)
from mxf2proxy.infrastructure.conversion_log import ConversionLog
from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.infrastructure.ffprobe import FFprobeAdapter
from mxf2proxy.infrastructure.file_scanner import FileScanner
from mxf2proxy.infrastructure.lut_library import LutLibrary
from mxf2proxy.pipeline.clip_converter import ClipConverter
from mxf2proxy.pipeline.command_builder import choose_encoder, output_path_for, resolve_enhancements

SINGLE_FILE_DESTINATION = "m2p-proxies"


def default_destination(source: Path) -> Path:
    """Sibling of the source: "<name> proxies" for folders, "m2p-proxies" for files."""
    if source.is_dir():
        return source.parent / f"{source.name} proxies"
    return source.parent / SINGLE_FILE_DESTINATION


def apply_destination_decision(decision: DestinationDecision, default: Path) -> Path:
    """A directory that was not there when the picker opened is used as-is,
    a pre-existing one gets a subdirectory named like the default."""
    if decision.use_default or decision.directory is None:
        return default
    chosen = Path(decision.directory).expanduser()
    if not chosen.exists() or not decision.existed_before:
        return chosen
    return chosen / default.name


class BatchOrchestrator:
    def __init__(
        self,
        config: GeneralConfig,
        settings_store: SettingsStore,
        prompter: Prompter,
        file_scanner: FileScanner,
        ffprobe_adapter: FFprobeAdapter,
        clip_converter: ClipConverter,
        lut_library: LutLibrary,
        event_bus: EventBus,
    ):
        self.config = config
        self.settings_store = settings_store
        self.prompter = prompter
        self.file_scanner = file_scanner
        self.ffprobe_adapter = ffprobe_adapter
        self.clip_converter = clip_converter
        self.lut_library = lut_library
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self._shutdown_requested = False

    def request_shutdown(self):
        """Lets the clip in flight finish, then stops before the next one."""
        self._shutdown_requested = True

    def run(self, job: Job) -> BatchResult:
        result = BatchResult.ABORTED
        try:
            result = self._run(job)
        finally:
            self.event_bus.publish(BatchFinished(source=job.source, result=result, destination=job.destination))
        return result

    def _run(self, job: Job) -> BatchResult:
        job.overwrite_all = False
        job.skip_all = False
        job.cancelled = False
        settings = self.settings_store.snapshot()

        # Member clips
        try:
            job.clips = self._enumerate(job.source)
        except OSError as e:
            self.logger.error(f"Error reading folder {job.source}: {e}")
            return BatchResult.ABORTED
        job.remaining_clips = len(job.clips)

        # Destination
        default = default_destination(job.source)
        decision = self.prompter.choose_destination(job.source, default)
        if decision is None:
            self.logger.info(f"Destination selection cancelled for {job.source}")
            return BatchResult.ABORTED
        destination = apply_destination_decision(decision, default)
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Cannot create destination {destination}: {e}")
            return BatchResult.ABORTED
        job.destination = destination

        log = ConversionLog(destination)
        output_format = OutputFormat(settings.output_format)
        lut_path, watermark = resolve_enhancements(
            settings, self.lut_library, self.config.watermark_image_path
        )
        log.write(
            f"LUT check: lut_enabled={settings.lut_enabled}, lut_file={settings.lut_file or 'nil'}, "
            f"has_lut={lut_path is not None}"
        )
        log.write(f"Watermark: enabled={settings.watermark_enabled}, mode={watermark.mode.value}")

        self.logger.info(f"Batch started: {job.source} -> {destination} ({len(job.clips)} clips, {output_format.value})")
        self.event_bus.publish(BatchStarted(source=job.source, destination=destination, clip_count=len(job.clips)))
        self.event_bus.publish(StatusMessage(message=f"encoding to: {destination}"))

        for index, clip in enumerate(job.clips):
            if self._shutdown_requested:
                self.logger.info(f"Batch stopped before {clip.name} (shutdown)")
                log.write(f"Stopped before {clip.name}")
                return BatchResult.STOPPED
            self.event_bus.publish(ClipStarted(source=clip, index=index, total=len(job.clips)))
            request = self._build_request(clip, destination, output_format, lut_path, watermark)
            outcome = self.clip_converter.convert(request, job, log)
            if outcome == ClipOutcome.CANCELLED:
                self.logger.info(f"Batch cancelled: {job.source}")
                return BatchResult.CANCELLED

        log.write(f"Conversion complete: {destination}")
        self.logger.info(f"Batch finished: {job.source}")
        return BatchResult.COMPLETED

    def _enumerate(self, source: Path) -> List[Path]:
        if source.is_dir():
            return self.file_scanner.scan(source)
        return [source]

    def _build_request(
        self,
        clip: Path,
        destination: Path,
        output_format: OutputFormat,
        lut_path: Optional[Path],
        watermark: Watermark,
    ) -> ConversionRequest:
        width, height = self._probe_frame_size(clip)
        return ConversionRequest(
            source=clip,
            output_format=output_format,
            destination=output_path_for(clip, destination, output_format),
            lut_path=lut_path,
            watermark=watermark,
            encoder=choose_encoder(width, self.config.use_hardware, self.config.hardware_width_threshold),
            frame_width=width,
            frame_height=height,
        )

    def _probe_frame_size(self, clip: Path):
        try:
            info = self.ffprobe_adapter.get_stream_info(clip)
        except Exception as e:
            self.logger.warning(f"Failed to probe {clip.name}; assuming unknown frame size: {e}")
            return 0, 0
        return int(info.get("width", 0) or 0), int(info.get("height", 0) or 0)
