"""Logging setup shared by the application and uvicorn.

``configure_logging()`` is called once from ``service.main``; the same dict is
handed to ``uvicorn.run(log_config=...)`` so access and app lines look alike.

Environment:
    AQUA_REMOTE_LOG_LEVEL: level for app and uvicorn loggers (default INFO)
    AQUA_REMOTE_VERBOSE_LOGGING: also emit per-request access lines
"""

import logging.config
from typing import Any, Dict

from .utils.env import get_env_bool, get_env_str

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOGGERS = ("uvicorn", "uvicorn.error", "aquaremote")


def get_log_level() -> str:
    """Return the configured log level name, upper-cased."""
    return get_env_str("AQUA_REMOTE_LOG_LEVEL", "INFO").upper()


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config() -> Dict[str, Any]:
    """Build the dictConfig mapping.

    The 1 second poll and reminder ticks make access logs noisy, so uvicorn
    access entries stay at WARNING unless verbose logging is enabled.
    """
    level = get_log_level()
    access_level = level if get_env_bool("AQUA_REMOTE_VERBOSE_LOGGING", False) else "WARNING"
    formatter = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}

    loggers = {name: _logger("default", level) for name in APP_LOGGERS}
    loggers["uvicorn.access"] = _logger("access", access_level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": dict(formatter), "access": dict(formatter)},
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
            "access": {
                "formatter": "access",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }


def configure_logging() -> None:
    """Apply the logging config; call once at startup."""
    logging.config.dictConfig(get_logging_config())


def get_uvicorn_log_config() -> Dict[str, Any]:
    """Config for ``uvicorn.run``; identical to the app's."""
    return get_logging_config()
