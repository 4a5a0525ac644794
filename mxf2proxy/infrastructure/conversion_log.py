import logging
from datetime import datetime
from pathlib import Path

LOG_FILENAME = "conversion_log.txt"

class ConversionLog:
    """Append-only conversion_log.txt shared by every clip of a destination.

    The encoder's raw output is appended to the same file by the subprocess
    runner, so entries are written with open/append/close and never buffered.
    """

    def __init__(self, directory: Path):
        self.path = Path(directory) / LOG_FILENAME
        self.logger = logging.getLogger(__name__)

    def write(self, entry: str) -> None:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.logger.info(f"[{self.path.parent.name}] {entry}")
        try:
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write(f"[{stamp}] {entry}\n")
        except OSError as e:
            self.logger.error(f"Failed to append to {self.path}: {e}")
