"""
Logging configuration for the redeployer.
"""

import logging
from typing import Dict, Any

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logging_config(
    level: str = "info",
    stream: str = "ext://sys.stdout",
    app_name: str = "database-redeployer",
) -> Dict[str, Any]:
    """Get logging configuration for the given level name and output stream."""
    level_name = logging.getLevelName(LEVELS.get(level.lower(), logging.INFO))
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": f"%(asctime)s - {app_name} - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": stream
            }
        },
        "loggers": {
            "db_redeploy": {
                "handlers": ["default"],
                "level": level_name,
                "propagate": False
            },
            # urllib3 logs every API request at debug level
            "urllib3": {
                "level": "WARNING"
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }
