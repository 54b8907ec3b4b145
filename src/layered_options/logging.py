from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from layered_options.models import LoggingSettings

_HANDLER_MARKER = "_layered_options_handler"


def init_logging(settings: LoggingSettings) -> None:
    """
    Configure the root logger from bound settings.

    Handlers installed by a previous call are replaced, so this can run again after
    the configuration is reloaded.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.level))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(settings.format)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    setattr(console, _HANDLER_MARKER, True)
    root.addHandler(console)

    if settings.file.enabled:
        path = Path(settings.file.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path,
            when="midnight",
            backupCount=settings.file.rotation.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        root.addHandler(file_handler)

    logging.getLogger(__name__).debug(
        "logging.initialized level=%s file_enabled=%s", settings.level, settings.file.enabled
    )
