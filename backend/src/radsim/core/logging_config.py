# -*- coding: utf-8 -*-
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from radsim.core import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure the root logger once: console output, plus a rotating file
    when LOG_FILE is set.
    """
    global _configured
    if _configured:
        return

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    path = log_file if log_file is not None else config.LOG_FILE
    if path:
        log_dir = os.path.dirname(path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5))

    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    _configured = True
