import logging
from logging.handlers import RotatingFileHandler

from app.core import config
from app.utiles.logger import LOG_FORMAT, get_logger


def test_handlers_are_attached_once_per_name():
    first = get_logger("fleet.tests.once")
    again = get_logger("fleet.tests.once")

    assert first is again
    assert len(again.handlers) == 2


def test_file_handler_follows_config():
    logger = get_logger("fleet.tests.config")
    rotating = next(h for h in logger.handlers if isinstance(h, RotatingFileHandler))

    assert rotating.baseFilename.endswith(config.LOG_FILE)
    assert rotating.maxBytes == config.LOG_MAX_BYTES
    assert rotating.backupCount == config.LOG_BACKUP_COUNT
    assert all(h.formatter._fmt == LOG_FORMAT for h in logger.handlers)
    assert logger.level == getattr(logging, config.LOG_LEVEL, logging.INFO)
