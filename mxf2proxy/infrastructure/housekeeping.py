from pathlib import Path
from typing import Iterable

class HousekeepingService:
    """Service for removing transient per-clip files."""

    def remove_intermediates(self, paths: Iterable[Path]):
        """Best-effort removal; missing files and OS errors are ignored."""
        for path in paths:
            try:
                Path(path).unlink()
            except OSError:
                pass
