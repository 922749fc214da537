"""Logging setup: colored terminal echo plus a per-run log file."""

import logging
import time
from pathlib import Path

import click

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"

LEVEL_COLORS = {
    logging.DEBUG: "bright_black",
    logging.INFO: "blue",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ClickEchoHandler(logging.Handler):
    """Echo log records to the terminal, colored by level."""

    def emit(self, record: logging.LogRecord):
        try:
            message = self.format(record)
            color = LEVEL_COLORS.get(record.levelno, "white")
            click.echo(click.style(message, fg=color), err=record.levelno >= logging.ERROR)
        except Exception:
            self.handleError(record)


def new_log_file(log_dir: Path) -> Path:
    """Path for a fresh agent log file inside log_dir."""
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"autonomous-{int(time.time() * 1000)}.log"


def latest_log_file(log_dir: Path) -> Path | None:
    """Newest agent log file in log_dir, if any."""
    if not log_dir.is_dir():
        return None
    logs = sorted(log_dir.glob("autonomous-*.log"))
    return logs[-1] if logs else None


def configure_logging(level: str = "info", log_file: Path | None = None) -> logging.Logger:
    """Attach terminal and file handlers to the package logger."""
    logger = logging.getLogger("task_manager")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    echo = ClickEchoHandler()
    echo.setFormatter(formatter)
    logger.addHandler(echo)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
