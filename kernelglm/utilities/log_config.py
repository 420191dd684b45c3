from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> int | None:
    """Route loguru output to stderr and, optionally, a run log file.

    Library modules only emit through ``loguru.logger``; sinks are chosen by
    the entry point. Returns the id of the file sink, if one was added, so
    the caller can close it with ``logger.remove``.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return logger.add(str(log_file), level="DEBUG", format=LOG_FORMAT, encoding="utf-8")
    return None


def silence_logging() -> None:
    logger.remove()
