from __future__ import annotations

import logging
from typing import Optional

from tpgclient.config.models import LoggingSettings


def configure_logging(settings: LoggingSettings, *, http_debug: bool = False) -> None:
    """
    Configure the root logger for scripts and notebooks using the client.

    urllib3 logs every connection at DEBUG; it stays at WARNING unless `http_debug` is set.
    """

    level = getattr(logging, settings.level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {settings.level}")

    handlers: Optional[list[logging.Handler]] = None
    if settings.file is not None:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(settings.file, encoding="utf-8"), logging.StreamHandler()]

    logging.basicConfig(level=level, format=settings.format, handlers=handlers)
    logging.getLogger("urllib3").setLevel(logging.DEBUG if http_debug else logging.WARNING)
