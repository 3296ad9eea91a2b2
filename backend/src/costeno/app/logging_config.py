# backend/src/costeno/app/logging_config.py
import logging.config
import os

LOG_LEVEL = os.getenv("COSTENO_LOG_LEVEL", "INFO").upper()

_FORMAT = "%(asctime)s %(levelname)s [cid=%(correlation_id)s sid=%(session_id)s] %(name)s: %(message)s"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,  # mantiene loggers de uvicorn/fastapi
    "filters": {
        "ctx": {
            "()": "costeno.observability.logging_filters.ContextLogFilter"
        }
    },
    "formatters": {
        "default": {"format": _FORMAT},
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "filters": ["ctx"],
            "formatter": "default",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"]
    },
    "loggers": {
        "uvicorn.error": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        },
        "costeno": {
            "level": LOG_LEVEL,
            "handlers": ["console"],
            "propagate": False
        }
    }
}


def setup_logging():
    logging.config.dictConfig(LOGGING)
