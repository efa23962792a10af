# config/logging_config.py
# Every engine module logs through logging.getLogger(__name__); host
# applications call configure_logging() once at startup.

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ENGINE_LOGGERS = ("engine", "utils")


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Basic console logging for the engine packages at `level`."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format=LOG_FORMAT)
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(level)
