# order_engine/utils/logging.py
import logging

from order_engine.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        logging.basicConfig(level=LOG_LEVEL, format=_FORMAT)
        _configured = True
    return logging.getLogger(name)
