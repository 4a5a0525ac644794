import logging
import subprocess
from pathlib import Path
from typing import List

# Exit status reported when the executable could not be started at all.
LAUNCH_FAILED = -1

class SubprocessRunner:
    """Runs an external executable with its combined output appended to a log file.

    No timeout is applied: a hung encoder hangs the batch.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def run(self, executable: str, args: List[str], log_path: Path) -> int:
        """Runs to completion and returns the exit status (or LAUNCH_FAILED)."""
        cmd = [str(executable), *args]
        self.logger.debug(f"RUN: {' '.join(cmd)}")
        try:
            log_handle = open(log_path, "a", encoding="utf-8")
        except OSError as e:
            self.logger.error(f"Cannot open log {log_path}: {e}")
            return LAUNCH_FAILED

        with log_handle:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=subprocess.STDOUT,
                )
            except OSError as e:
                self.logger.error(f"Failed to launch {executable}: {e}")
                return LAUNCH_FAILED
            returncode = process.wait()

        self.logger.debug(f"EXIT: {executable} code={returncode}")
        return returncode
