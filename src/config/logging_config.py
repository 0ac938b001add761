import logging
import logging.config
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JOURNAL_FORMAT = "openotp_exporter[%(process)d]: [%(levelname)s] %(name)s: %(message)s"
JOURNAL_SOCKET = "/dev/log"


def build_logging_config(
    level: str = "info", filename: Optional[str] = None, journal: bool = False
) -> dict:
    """
    Build a dictConfig mapping for the selected log sinks.

    Args:
        level (str): Log level name, case-insensitive.
        filename (Optional[str]): Append log entries to this file when set.
        journal (bool): Send log entries to the local syslog socket, which
            systemd-journald collects.

    Returns:
        dict: A logging.config.dictConfig compatible mapping.
    """
    level = level.upper()
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        },
    }
    if journal and os.path.exists(JOURNAL_SOCKET):
        handlers["journal"] = {
            "class": "logging.handlers.SysLogHandler",
            "address": JOURNAL_SOCKET,
            "formatter": "journal",
            "level": level,
        }
    if filename:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": filename,
            "formatter": "default",
            "level": level,
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
            "journal": {"format": JOURNAL_FORMAT},
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
    }


def setup_logging(level: str = "info", filename: Optional[str] = None, journal: bool = False):
    logging.config.dictConfig(build_logging_config(level, filename, journal))
    logger = logging.getLogger(__name__)
    if journal and not os.path.exists(JOURNAL_SOCKET):
        logger.warning("Cannot log to systemd journal")
    logger.debug(f"Logging initialised at level: {level}")
