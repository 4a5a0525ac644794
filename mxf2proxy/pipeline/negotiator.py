import logging
from pathlib import Path

from mxf2proxy.domain.collaborators import Prompter
from mxf2proxy.domain.models import DuplicateVerdict, Job


class DuplicateNegotiator:
    """Decides what to do with an output file that already exists.

    Asks the prompter once per collision and remembers the batch-wide
    "all" answers on the job, so later collisions never prompt again.
    """

    def __init__(self, prompter: Prompter):
        self.prompter = prompter
        self.logger = logging.getLogger(__name__)

    def resolve(self, job: Job, destination: Path) -> DuplicateVerdict:
        if job.overwrite_all:
            return DuplicateVerdict.OVERWRITE_ALL
        if job.skip_all:
            return DuplicateVerdict.SKIP_ALL

        verdict = DuplicateVerdict(self.prompter.resolve_duplicate(destination))
        self.logger.info(f"DUPLICATE: {destination.name} -> {verdict.value}")

        if verdict == DuplicateVerdict.OVERWRITE_ALL:
            job.overwrite_all = True
        elif verdict == DuplicateVerdict.SKIP_ALL:
            job.skip_all = True
        elif verdict == DuplicateVerdict.CANCEL:
            job.cancelled = True
        return verdict
