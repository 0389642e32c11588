"""Loguru sinks for the workout engine.

The engine only emits records; sinks are installed by the application (the
CLI calls setup_logger). Structured pipeline events keep their fields in the
record's `extra` dict, which the file sink can write as JSON lines.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message} | {extra}"


def setup_logger(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> None:
    """Replace every loguru sink with a console sink and an optional file sink.

    Args:
        level: Minimum level for both sinks
        log_file: File sink path; None means console only
        rotation: When the file sink rolls over (size or interval)
        retention: How long rolled files are kept
        serialize: Write the file sink as JSON lines
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file is None:
        return

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        format=FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        serialize=serialize,
    )
    logger.debug(f"File logging enabled at {path} (serialize={serialize})")
