# scim_connector/utils/logger.py

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(level: str | None = None) -> logging.Logger:
    """
    Configure the root logger once and return the connector's logger.
    Safe to call more than once; handlers are not duplicated.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()

    if not any(getattr(h, "_scim_connector", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._scim_connector = True
        root.addHandler(handler)

    root.setLevel(getattr(logging, level_name, logging.INFO))
    return logging.getLogger("scim_connector")
