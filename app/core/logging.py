import logging
import logging.config
import os
from pathlib import Path

from app.core.config import settings

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_logging_config(log_dir: str, level: str, to_files: bool = True) -> dict:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "detailed",
            "stream": "ext://sys.stdout"
        },
    }
    if to_files:
        handlers.update({
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": level,
                "formatter": "detailed",
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": 10485760,
                "backupCount": 5
            },
            "error_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "ERROR",
                "formatter": "detailed",
                "filename": os.path.join(log_dir, "error.log"),
                "maxBytes": 10485760,
                "backupCount": 5
            },
            # Money movements get their own trail for reconciliation with the gateway.
            "payments_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "INFO",
                "formatter": "detailed",
                "filename": os.path.join(log_dir, "payments.log"),
                "maxBytes": 10485760,
                "backupCount": 10
            },
        })
    app_handlers = [name for name in ("console", "file", "error_file") if name in handlers]
    payment_handlers = app_handlers + (["payments_file"] if to_files else [])

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"detailed": {"format": FORMAT}},
        "handlers": handlers,
        "root": {"level": level, "handlers": app_handlers},
        "loggers": {
            "app": {"level": level, "handlers": app_handlers, "propagate": False},
            "app.services.payment": {"level": "INFO", "handlers": payment_handlers, "propagate": False},
            "app.services.payment_gateway": {"level": "INFO", "handlers": payment_handlers, "propagate": False},
            "app.core.scheduler": {"level": "INFO", "handlers": payment_handlers, "propagate": False},
            "apscheduler": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        }
    }


def configure_logging():
    to_files = os.getenv("TESTING") != "true"
    if to_files:
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings.LOG_DIR, settings.LOG_LEVEL.upper(), to_files))
