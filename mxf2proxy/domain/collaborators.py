"""Interfaces the pipeline expects from the outside world."""

from pathlib import Path
from typing import Optional, Protocol

from .models import DestinationDecision, DuplicateVerdict


class Prompter(Protocol):
    """UI collaborator answering the two blocking questions of a batch."""

    def choose_destination(self, source: Path, default: Path) -> Optional[DestinationDecision]:
        """None cancels the batch."""
        ...

    def resolve_duplicate(self, destination: Path) -> DuplicateVerdict:
        ...


class PrepassService(Protocol):
    """Converts a high-bit-depth intermediate to 8-bit; True on success."""

    # Height of the frames the intermediate is scaled to fit.
    frame_height: int

    def convert(self, input_path: Path, output_path: Path, log) -> bool:
        ...
