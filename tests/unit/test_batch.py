import os
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import RecordingPrompter
from mxf2proxy.config.models import GeneralConfig, ProxySettings
from mxf2proxy.config.settings_store import SettingsStore
from mxf2proxy.domain.events import BatchFinished, BatchStarted, ClipStarted, StatusMessage
from mxf2proxy.domain.models import (
    BatchResult,
    ClipOutcome,
    DestinationDecision,
    EncoderChoice,
    Job,
    OutputFormat,
    WatermarkMode,
)
from mxf2proxy.infrastructure.file_scanner import FileScanner
from mxf2proxy.infrastructure.lut_library import LutLibrary
from mxf2proxy.pipeline.batch import (
    BatchOrchestrator,
    apply_destination_decision,
    default_destination,
)
from mxf2proxy.ui.prompts import ScriptedPrompter, existed_before


def make_orchestrator(event_bus, tmp_path, settings=None, decision=None, config=None, outcomes=None):
    prompter = RecordingPrompter(decision=decision or DestinationDecision())
    ffprobe = MagicMock()
    ffprobe.get_stream_info.return_value = {"width": 1920, "height": 1080}
    converter = MagicMock()
    if outcomes:
        converter.convert.side_effect = list(outcomes)
    else:
        converter.convert.return_value = ClipOutcome.COMPLETED
    config = config or GeneralConfig(use_hardware=False)
    orchestrator = BatchOrchestrator(
        config=config,
        settings_store=SettingsStore(None, defaults=settings or ProxySettings()),
        prompter=prompter,
        file_scanner=FileScanner(config.extensions),
        ffprobe_adapter=ffprobe,
        clip_converter=converter,
        lut_library=LutLibrary(tmp_path / "luts"),
        event_bus=event_bus,
    )
    return orchestrator, prompter, ffprobe, converter


def requests_of(converter):
    return [c.args[0] for c in converter.convert.call_args_list]


def test_default_destination(tmp_path, clip_folder):
    assert default_destination(clip_folder) == tmp_path / "Card01 proxies"
    assert default_destination(clip_folder / "a.mxf") == clip_folder / "m2p-proxies"


def test_folder_batch_runs_clips_in_name_order(event_bus, tmp_path, clip_folder):
    orchestrator, prompter, _, converter = make_orchestrator(event_bus, tmp_path)
    events = []
    for event_type in (BatchStarted, StatusMessage, ClipStarted, BatchFinished):
        event_bus.subscribe(event_type, events.append)
    job = Job(source=clip_folder, remaining_clips=2)

    result = orchestrator.run(job)

    destination = tmp_path / "Card01 proxies"
    assert result == BatchResult.COMPLETED
    assert destination.is_dir()
    assert job.destination == destination
    assert job.clips == [clip_folder / "a.mxf", clip_folder / "b.mov"]
    assert prompter.destination_prompts == [(clip_folder, destination)]
    requests = requests_of(converter)
    assert [r.source.name for r in requests] == ["a.mxf", "b.mov"]
    assert [r.destination for r in requests] == [destination / "a.mov", destination / "b.mov"]

    assert isinstance(events[0], BatchStarted) and events[0].clip_count == 2
    assert events[1].message == f"encoding to: {destination}"
    assert [e.index for e in events if isinstance(e, ClipStarted)] == [0, 1]
    assert events[-1].result == BatchResult.COMPLETED

    log_text = (destination / "conversion_log.txt").read_text()
    assert "LUT check: lut_enabled=False, lut_file=nil, has_lut=False" in log_text
    assert f"Conversion complete: {destination}" in log_text


def test_single_file_goes_to_sibling_folder(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path)
    source = clip_folder / "a.mxf"

    result = orchestrator.run(Job(source=source))

    assert result == BatchResult.COMPLETED
    assert requests_of(converter)[0].destination == clip_folder / "m2p-proxies" / "a.mov"


def test_settings_snapshot_drives_requests(event_bus, tmp_path, clip_folder):
    settings = ProxySettings(
        output_format="mxf", watermark_enabled=True, watermark_mode="custom", watermark_text="DRAFT"
    )
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path, settings=settings)

    orchestrator.run(Job(source=clip_folder))

    request = requests_of(converter)[0]
    assert request.output_format == OutputFormat.MXF
    assert request.destination.suffix == ".mxf"
    assert request.watermark.mode == WatermarkMode.TEXT
    assert request.frame_height == 1080


def test_flags_are_reset_at_batch_start(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path)
    seen = []
    converter.convert.side_effect = lambda request, job, log: seen.append(
        (job.overwrite_all, job.skip_all)
    ) or ClipOutcome.COMPLETED
    job = Job(source=clip_folder, overwrite_all=True, skip_all=True)

    orchestrator.run(job)

    assert seen[0] == (False, False)
    assert job.remaining_clips == 2


def test_destination_cancel_aborts_without_side_effects(event_bus, tmp_path, clip_folder):
    orchestrator, prompter, _, converter = make_orchestrator(event_bus, tmp_path)
    prompter.decision = None
    finished = []
    event_bus.subscribe(BatchFinished, finished.append)

    result = orchestrator.run(Job(source=clip_folder))

    assert result == BatchResult.ABORTED
    assert not (tmp_path / "Card01 proxies").exists()
    converter.convert.assert_not_called()
    assert finished[0].result == BatchResult.ABORTED


def test_uncreatable_destination_aborts(event_bus, tmp_path, clip_folder):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    decision = DestinationDecision(use_default=False, directory=blocker / "proxies", picker_opened_at=time.time())
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path, decision=decision)

    assert orchestrator.run(Job(source=clip_folder)) == BatchResult.ABORTED
    converter.convert.assert_not_called()


def test_cancelled_clip_stops_batch(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(
        event_bus, tmp_path, outcomes=[ClipOutcome.CANCELLED, ClipOutcome.COMPLETED]
    )

    assert orchestrator.run(Job(source=clip_folder)) == BatchResult.CANCELLED
    assert converter.convert.call_count == 1


def test_failed_clip_does_not_stop_batch(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(
        event_bus, tmp_path, outcomes=[ClipOutcome.FAILED, ClipOutcome.COMPLETED]
    )

    assert orchestrator.run(Job(source=clip_folder)) == BatchResult.COMPLETED
    assert converter.convert.call_count == 2


def test_probe_failure_falls_back_to_software(event_bus, tmp_path, clip_folder):
    config = GeneralConfig(use_hardware=True)
    orchestrator, _, ffprobe, converter = make_orchestrator(event_bus, tmp_path, config=config)
    ffprobe.get_stream_info.side_effect = [RuntimeError("ffprobe failed"), {"width": 1920, "height": 1080}]

    orchestrator.run(Job(source=clip_folder))

    first, second = requests_of(converter)
    assert first.encoder == EncoderChoice.SOFTWARE
    assert first.frame_width == 0
    assert second.encoder == EncoderChoice.HARDWARE


def test_unreadable_folder_aborts(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path)
    orchestrator.file_scanner = MagicMock()
    orchestrator.file_scanner.scan.side_effect = PermissionError("denied")

    assert orchestrator.run(Job(source=clip_folder)) == BatchResult.ABORTED
    converter.convert.assert_not_called()


class TestApplyDestinationDecision:
    def test_default(self, tmp_path):
        default = tmp_path / "Card01 proxies"
        assert apply_destination_decision(DestinationDecision(), default) == default

    def test_missing_directory_is_used_as_is(self, tmp_path):
        chosen = tmp_path / "fresh"
        decision = DestinationDecision(use_default=False, directory=chosen)
        assert apply_destination_decision(decision, tmp_path / "Card01 proxies") == chosen

    def test_directory_created_while_picking_is_used_as_is(self, tmp_path):
        chosen = tmp_path / "made in picker"
        chosen.mkdir()
        decision = DestinationDecision(use_default=False, directory=chosen, existed_before=False)
        assert apply_destination_decision(decision, tmp_path / "Card01 proxies") == chosen

    def test_existing_directory_gets_subdirectory(self, tmp_path):
        chosen = tmp_path / "Projects"
        chosen.mkdir()
        decision = DestinationDecision(use_default=False, directory=chosen, existed_before=True)
        result = apply_destination_decision(decision, tmp_path / "Card01 proxies")
        assert result == chosen / "Card01 proxies"

    def test_existing_directory_written_after_picker_opened_still_gets_subdirectory(self, tmp_path):
        chosen = tmp_path / "Proxies"
        chosen.mkdir()
        os.utime(chosen, (0, 0))
        opened_at = time.time()
        # an earlier batch writing into the directory moves its ctime past opened_at
        (chosen / "A proxies").mkdir()
        decision = DestinationDecision(
            use_default=False,
            directory=chosen,
            picker_opened_at=opened_at,
            existed_before=existed_before(chosen, opened_at),
        )

        result = apply_destination_decision(decision, tmp_path / "B proxies")

        assert result == chosen / "B proxies"


def test_fixed_destination_keeps_subdirectories_across_batches(event_bus, tmp_path, clip_folder):
    target = tmp_path / "Proxies"
    target.mkdir()
    second = tmp_path / "Card02"
    second.mkdir()
    (second / "c.mxf").write_bytes(b"clip")
    prompter = ScriptedPrompter(destination=target)
    orchestrator, _, _, _ = make_orchestrator(event_bus, tmp_path)
    orchestrator.prompter = prompter

    first_job, second_job = Job(source=clip_folder), Job(source=second)
    orchestrator.run(first_job)
    orchestrator.run(second_job)

    assert first_job.destination == target / "Card01 proxies"
    assert second_job.destination == target / "Card02 proxies"


def test_fixed_destination_created_by_the_run_is_used_as_is(event_bus, tmp_path, clip_folder):
    target = tmp_path / "New Proxies"
    prompter = ScriptedPrompter(destination=target)
    orchestrator, _, _, _ = make_orchestrator(event_bus, tmp_path)
    orchestrator.prompter = prompter

    first_job = Job(source=clip_folder)
    orchestrator.run(first_job)
    second_job = Job(source=clip_folder / "a.mxf")
    orchestrator.run(second_job)

    assert first_job.destination == target
    assert second_job.destination == target


def test_shutdown_stops_before_next_clip(event_bus, tmp_path, clip_folder):
    orchestrator, _, _, converter = make_orchestrator(event_bus, tmp_path)

    def convert_then_shut_down(request, job, log):
        orchestrator.request_shutdown()
        return ClipOutcome.COMPLETED

    converter.convert.side_effect = convert_then_shut_down
    finished = []
    event_bus.subscribe(BatchFinished, finished.append)

    assert orchestrator.run(Job(source=clip_folder)) == BatchResult.STOPPED
    assert converter.convert.call_count == 1
    assert finished[0].result == BatchResult.STOPPED
    assert "Stopped before b.mov" in (tmp_path / "Card01 proxies" / "conversion_log.txt").read_text()
