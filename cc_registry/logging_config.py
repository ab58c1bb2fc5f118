import logging
import sys

from cc_registry.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def set_logger_and_children_level(logger_instance: logging.Logger, level: int | str):
    """Set the level of a logger and of every logger registered beneath it."""
    logger_instance.setLevel(level)
    for handler in logger_instance.handlers:
        handler.setLevel(level)

    prefix = f"{logger_instance.name}."
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(prefix):
            logging.getLogger(name).setLevel(level)


def _configure_logger(name: str) -> logging.Logger:
    configured = logging.getLogger(name)
    if not configured.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        configured.addHandler(handler)
    set_logger_and_children_level(configured, settings.LOG_LEVEL.upper())
    return configured


logger = _configure_logger("cc_registry")
