"""Domain events for the proxy conversion pipeline.

Events flow through the EventBus so the queue, batch and clip layers never
talk to the UI directly. The UI subscribes and keeps its own snapshot.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel
from .models import BatchResult, ClipOutcome


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class JobQueued(Event):
    """Emitted when a submitted source is accepted into the queue."""

    source: Path
    clip_estimate: int


class ClipCountChanged(Event):
    """Emitted whenever the outstanding clip counter moves."""

    outstanding: int


class StatusMessage(Event):
    """Free-text status line for the UI ("encoding to: ...")."""

    message: str


class BatchStarted(Event):
    source: Path
    destination: Path
    clip_count: int


class BatchFinished(Event):
    """Emitted when a batch ends, whatever the reason."""

    source: Path
    result: BatchResult
    destination: Optional[Path] = None


class ClipStarted(Event):
    source: Path
    index: int
    total: int


class ClipFinished(Event):
    source: Path
    outcome: ClipOutcome
    output_path: Optional[Path] = None
