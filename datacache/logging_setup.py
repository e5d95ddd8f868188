"""Root logger configuration for applications embedding datacache.

The library itself only creates module loggers; call
:func:`setup_logging` once at application start-up to get output.
"""

import logging
import sys
from typing import Optional

from datacache.config import LoggingSettings, get_settings


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Configure the root logger from *settings*.

    Existing root handlers are replaced by a stdout handler and, when
    ``settings.file`` is set, a file handler.

    Args:
        settings: Logging section to apply; defaults to the global
            settings' ``logging`` section.
    """
    settings = settings or get_settings().logging
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(settings.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.file:
        file_handler = logging.FileHandler(settings.file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(
        "Logging configured. Level=%s", logging.getLevelName(level)
    )
