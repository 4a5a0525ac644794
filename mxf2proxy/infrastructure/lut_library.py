import logging
import shutil
from pathlib import Path
from typing import List, Optional

LUT_EXTENSION = ".cube"

class LutLibrary:
    """Directory of .cube files the user can pick a LUT from."""

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()
        self.logger = logging.getLogger(__name__)

    def available(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            entry.name for entry in self.directory.iterdir()
            if entry.is_file() and entry.suffix.lower() == LUT_EXTENSION
        )

    def add(self, lut_file: Path) -> str:
        """Copies a LUT into the library, replacing a same-named entry."""
        lut_file = Path(lut_file)
        if lut_file.suffix.lower() != LUT_EXTENSION:
            raise ValueError(f"Not a .cube LUT: {lut_file}")
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / lut_file.name
        if target.exists():
            target.unlink()
        shutil.copy2(lut_file, target)
        self.logger.info(f"LUT added: {target}")
        return target.name

    def resolve(self, lut_file: Optional[str]) -> Optional[Path]:
        """Maps a settings value (library name or absolute path) to a path.

        Returns None when nothing is set; existence is not checked here.
        """
        if not lut_file:
            return None
        candidate = Path(lut_file).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.directory / candidate
