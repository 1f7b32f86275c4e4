"""
Custom logging configuration to suppress device-code polling logs
"""

import logging
import logging.config
from typing import Any, Dict


class DevicePollFilter(logging.Filter):
    """Filter to suppress repeated token polling logs from httpx."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out device-code token polls from httpx request logs."""
        if record.name == "httpx":
            message = record.getMessage()
            # Pending polls answer 400 authorization_pending every few seconds
            if "POST" in message and "token" in message and "400" in message:
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with device poll suppression."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "device_poll_filter": {
                "()": DevicePollFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr"
            },
            "http": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
                "filters": ["device_poll_filter"]
            }
        },
        "loggers": {
            "httpx": {
                "handlers": ["http"],
                "level": "WARNING" if level != "DEBUG" else "INFO",
                "propagate": False
            },
            "mintauth": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
