import logging
from logging.handlers import RotatingFileHandler

from app.core.config import LOG_BACKUP_COUNT, LOG_FILE, LOG_LEVEL, LOG_MAX_BYTES

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"


def _handlers():
    formatter = logging.Formatter(LOG_FORMAT)

    # rotated by size; opened on first record
    rotating = RotatingFileHandler(
        LOG_FILE,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
        delay=True,
    )
    console = logging.StreamHandler()
    for handler in (rotating, console):
        handler.setFormatter(formatter)
    return rotating, console


def get_logger(name):
    """
    Logger for one fleet-inspection module, writing to the rotating log file
    and the console. Handlers are attached once per name.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    if not logger.handlers:
        for handler in _handlers():
            logger.addHandler(handler)

    return logger
