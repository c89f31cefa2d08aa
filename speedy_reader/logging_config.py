"""Logging configuration for speedy-reader."""
import logging
import logging.handlers
import sys
from pathlib import Path


def setup_logging(
    log_dir: Path,
    level: str = "WARNING",
    verbose: bool = False,
    console: bool = True,
    retention_days: int = 7,
) -> logging.Logger:
    """Configure file logging plus an optional stderr handler.

    Args:
        log_dir: Directory for log files (created if missing)
        level: Level name for the console handler
        verbose: If True, set console to DEBUG level
        console: Attach a stderr handler. The interactive loop passes False so
            log lines never draw over the screen.
        retention_days: How many rotated log files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers (avoid duplicates)
    root_logger.handlers.clear()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=log_dir / "speedy-reader.log",
            when="midnight",
            interval=1,
            backupCount=retention_days,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: file logging disabled ({e})", file=sys.stderr)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_level = logging.DEBUG if verbose else logging.getLevelName(level.upper())
        if not isinstance(console_level, int):
            console_level = logging.WARNING
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root_logger.addHandler(console_handler)

    # Third-party chatter stays out of the log unless verbose
    for noisy in ("trafilatura", "httpx", "anthropic", "charset_normalizer"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)

    return root_logger
