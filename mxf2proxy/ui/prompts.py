"""Prompter implementations for the batch pipeline's two blocking questions."""

import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from mxf2proxy.domain.models import DestinationDecision, DuplicateVerdict

VERDICT_CHOICES = [verdict.value for verdict in DuplicateVerdict]


def existed_before(directory: Path, opened_at: float) -> bool:
    """True when `directory` was already there at `opened_at`.

    Only a real creation time (st_birthtime) can show that a directory is
    newer than the picker; st_ctime moves on every write, so platforms
    without a birth time treat any existing directory as pre-existing.
    """
    path = Path(directory).expanduser()
    if not path.exists():
        return False
    birthtime = getattr(path.stat(), "st_birthtime", None)
    if birthtime is None:
        return True
    return birthtime < opened_at


class ConsolePrompter:
    """Interactive prompts on the terminal (rich)."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def choose_destination(self, source: Path, default: Path) -> Optional[DestinationDecision]:
        if Confirm.ask(f"Write proxies for [bold]{source.name}[/bold] to {default}?", default=True, console=self.console):
            return DestinationDecision(use_default=True)
        opened_at = time.time()
        answer = Prompt.ask("Destination directory (empty to cancel)", default="", console=self.console)
        if not answer.strip():
            return None
        directory = Path(answer.strip())
        return DestinationDecision(
            use_default=False,
            directory=directory,
            picker_opened_at=opened_at,
            existed_before=existed_before(directory, opened_at),
        )

    def resolve_duplicate(self, destination: Path) -> DuplicateVerdict:
        answer = Prompt.ask(
            f"[yellow]{destination.name}[/yellow] already exists",
            choices=VERDICT_CHOICES,
            default=DuplicateVerdict.SKIP.value,
            console=self.console,
        )
        return DuplicateVerdict(answer)


class ScriptedPrompter:
    """Non-interactive answers, for unattended runs and tests."""

    def __init__(
        self,
        duplicate_verdict: DuplicateVerdict = DuplicateVerdict.SKIP,
        destination: Optional[Path] = None,
        cancel_destination: bool = False,
    ):
        self.duplicate_verdict = duplicate_verdict
        self.destination = destination
        self.cancel_destination = cancel_destination
        # A fixed destination counts as "picked" when the run started, so
        # directories made by earlier batches of this run stay new.
        self.started_at = time.time()
        self.destination_existed = destination is not None and Path(destination).expanduser().exists()
        self.duplicate_prompts = 0

    def choose_destination(self, source: Path, default: Path) -> Optional[DestinationDecision]:
        if self.cancel_destination:
            return None
        if self.destination is None:
            return DestinationDecision(use_default=True)
        return DestinationDecision(
            use_default=False,
            directory=self.destination,
            picker_opened_at=self.started_at,
            existed_before=self.destination_existed,
        )

    def resolve_duplicate(self, destination: Path) -> DuplicateVerdict:
        self.duplicate_prompts += 1
        return self.duplicate_verdict
