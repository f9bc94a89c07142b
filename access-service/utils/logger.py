import logging
import sys

from config.settings import LOG_FORMAT, LOG_LEVEL


def _level():
    # Under uvicorn its level wins; standalone (scripts, tests) LOG_LEVEL applies
    return logging.getLogger("uvicorn").level or LOG_LEVEL


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    # One stdout handler per named logger, even when modules are re-imported
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(_level())
    logger.propagate = False
    return logger
