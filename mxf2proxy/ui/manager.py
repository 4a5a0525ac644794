from typing import Optional

from rich.console import Console

from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.ui.state import UIState
from mxf2proxy.domain.events import (
    BatchFinished, BatchStarted, ClipCountChanged, ClipFinished,
    ClipStarted, JobQueued, StatusMessage,
)
from mxf2proxy.domain.models import BatchResult, ClipOutcome

OUTCOME_STYLES = {
    ClipOutcome.COMPLETED: "green",
    ClipOutcome.FAILED: "red",
    ClipOutcome.SKIPPED: "yellow",
    ClipOutcome.CANCELLED: "magenta",
}

class UIManager:
    """Subscribes to EventBus, updates UIState and echoes progress to the console."""

    def __init__(self, bus: EventBus, state: UIState, console: Optional[Console] = None):
        self.bus = bus
        self.state = state
        self.console = console
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(JobQueued, self.on_job_queued)
        self.bus.subscribe(ClipCountChanged, self.on_clip_count_changed)
        self.bus.subscribe(StatusMessage, self.on_status_message)
        self.bus.subscribe(BatchStarted, self.on_batch_started)
        self.bus.subscribe(BatchFinished, self.on_batch_finished)
        self.bus.subscribe(ClipStarted, self.on_clip_started)
        self.bus.subscribe(ClipFinished, self.on_clip_finished)

    def _print(self, message: str):
        if self.console is not None:
            self.console.print(message)

    def on_job_queued(self, event: JobQueued):
        with self.state._lock:
            self.state.queued_sources.append(event.source)
        self._print(f"[cyan]Queued[/cyan] {event.source} ({event.clip_estimate} clips)")

    def on_clip_count_changed(self, event: ClipCountChanged):
        with self.state._lock:
            self.state.outstanding_clips = event.outstanding

    def on_status_message(self, event: StatusMessage):
        with self.state._lock:
            self.state.status_text = event.message
        self._print(event.message)

    def on_batch_started(self, event: BatchStarted):
        with self.state._lock:
            if event.source in self.state.queued_sources:
                self.state.queued_sources.remove(event.source)
            self.state.active_source = event.source
            self.state.active_destination = event.destination

    def on_batch_finished(self, event: BatchFinished):
        with self.state._lock:
            if event.source in self.state.queued_sources:
                self.state.queued_sources.remove(event.source)
            self.state.active_source = None
            self.state.active_destination = None
            self.state.current_clip = None
            self.state.batches_finished += 1
        style = "green" if event.result == BatchResult.COMPLETED else "yellow"
        self._print(f"[{style}]Batch {event.result.value.lower()}[/{style}]: {event.source}")

    def on_clip_started(self, event: ClipStarted):
        with self.state._lock:
            self.state.current_clip = event.source
        self._print(f"  [{event.index + 1}/{event.total}] {event.source.name}")

    def on_clip_finished(self, event: ClipFinished):
        with self.state._lock:
            self.state.current_clip = None
            if event.outcome == ClipOutcome.COMPLETED:
                self.state.completed_count += 1
            elif event.outcome == ClipOutcome.FAILED:
                self.state.failed_count += 1
            elif event.outcome == ClipOutcome.SKIPPED:
                self.state.skipped_count += 1
        self.state.add_activity(f"{event.outcome.value}: {event.source.name}")
        style = OUTCOME_STYLES[event.outcome]
        self._print(f"    [{style}]{event.outcome.value}[/{style}] {event.source.name}")
