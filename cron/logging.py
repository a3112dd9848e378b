"""Cron logging: stdout + file per script, shared with the apps.publisher service loggers."""

import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _build_handlers(log_file: Path) -> list[logging.Handler]:
    fmt = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(), logging.FileHandler(log_file, encoding="utf-8")]
    for handler in handlers:
        handler.setFormatter(fmt)
    return handlers


def get_logger(script_name: str, log_dir: str | None = None) -> logging.Logger:
    """Logger `cron.<script_name>` writing to stdout and <LOG_DIR>/cron_<script_name>.log.

    The same handlers are attached to the `apps.publisher` logger so scheduler, reconcile and
    CDN driver lines land in the job's log file. Repeated calls reuse the existing handlers.
    """
    logger = logging.getLogger(f"cron.{script_name}")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    directory = Path(log_dir or os.getenv("LOG_DIR") or "logs")
    directory.mkdir(parents=True, exist_ok=True)
    handlers = _build_handlers(directory / f"cron_{script_name}.log")
    for handler in handlers:
        logger.addHandler(handler)

    app_logger = logging.getLogger("apps.publisher")
    app_logger.setLevel(logging.INFO)
    if not app_logger.handlers:
        for handler in handlers:
            app_logger.addHandler(handler)
    return logger
