from pathlib import Path
from typing import List

class FileScanner:
    """Lists the member clips of a submitted folder (non-recursive)."""

    def __init__(self, extensions: List[str]):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]

    def matches(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def scan(self, directory: Path) -> List[Path]:
        """Returns matching files sorted by filename."""
        clips = [
            entry for entry in Path(directory).iterdir()
            if entry.is_file() and self.matches(entry)
        ]
        return sorted(clips, key=lambda p: p.name)

    def count(self, source: Path) -> int:
        """Clip estimate for a source: matching members of a folder, else 1."""
        source = Path(source)
        if not source.is_dir():
            return 1
        try:
            return len(self.scan(source))
        except OSError:
            return 0
