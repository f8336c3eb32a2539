"""
Logging setup shared by the API process and the standalone scheduler
"""
import logging
import os
from logging.handlers import RotatingFileHandler

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging once; adds a rotating file when LOGS_PATH is set"""
    handlers = [logging.StreamHandler()]

    if settings.LOGS_PATH:
        os.makedirs(settings.LOGS_PATH, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(settings.LOGS_PATH, "profitnav.log"),
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
            )
        )

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
