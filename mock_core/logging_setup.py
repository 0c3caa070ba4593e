from __future__ import annotations
import logging

from mock_core.config import LOG_LEVEL

# Libraries that log every request or statement at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def setup_console_logging(level: int | str | None = None) -> None:
    """
    Call once at app start. Prints session, delivery and numbering logs to console.
    """
    level = level if level is not None else LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        # already configured (uvicorn or pytest)
        root.setLevel(level)
        return

    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
