import logging
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = Path("~/.mxf2proxy/mxf2proxy.log")

def setup_logging(log_path: Optional[Path] = None, debug: bool = False) -> logging.Logger:
    """
    Setup application logging for mxf2proxy.

    Per-destination conversion logs are written separately by ConversionLog;
    this file collects the application's own diagnostics.

    Args:
        log_path: Path to the log file (defaults to ~/.mxf2proxy/mxf2proxy.log)
        debug: If True, enable DEBUG level logging
    """
    log_file = Path(log_path or DEFAULT_LOG_PATH).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file)],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
