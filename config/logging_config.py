# config/logging_config.py
import logging
import sys

from config.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
HANDLER_NAME = "tap-attendance-stdout"


def configure_logging(level: str = None) -> None:
    """
    Attach our stdout handler to the root logger once. Handlers installed by
    anything else (uvicorn, pytest) are left alone.
    """
    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL)
    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
