"""Console logging for the Streamlit app and the render service."""
import logging
import os
import sys
from typing import Optional

from .config import ENV_LOG_LEVEL

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "report_assembly.console"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach one console handler to the package logger. Calling it again only
    updates the level, so Streamlit reruns do not stack handlers.
    """
    name = (level or os.getenv(ENV_LOG_LEVEL, "") or "INFO").upper()
    resolved = getattr(logging, name, None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logger = logging.getLogger("report_assembly")
    logger.setLevel(resolved)
    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger
