"""
Logging configuration for the Karakeep Adapter.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
) -> Optional[Path]:
    """
    Set up logging configuration.

    Args:
        level: Root log level name
        log_file: Optional log file name; a timestamped copy is written
            under ``logs/`` in the working directory
        console_output: Also log to stderr (stdout is kept for command output)

    Returns:
        Path of the log file, if one was created
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers = []
    log_path = None

    if log_file:
        log_dir = Path.cwd() / "logs"
        log_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = log_dir / f"{Path(log_file).stem}_{timestamp}.log"

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    if log_path:
        logger.info(f"Karakeep Adapter starting - Log file: {log_path}")
    logger.debug(f"Log level: {level.upper()}")

    # Reduce noise from HTTP libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return log_path
