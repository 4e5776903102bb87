"""Root logging configuration for hosts embedding the launcher."""

from __future__ import annotations

import logging

from firejail_launcher.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from *settings* (``log_level``)."""
    settings = settings or Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
