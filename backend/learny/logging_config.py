import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_LOG_FORMAT = "%(asctime)s %(message)s"


def _flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in ("1", "true", "yes")


def configure_logging() -> None:
    """Configure process-wide logging from LEARNY_* environment flags.

    Telemetry lines go to their own handler so they can be silenced with
    LEARNY_TELEMETRY_LOG=0 without hiding application warnings.
    """
    level = os.getenv("LEARNY_LOG_LEVEL", "INFO").upper()
    telemetry_level = level if os.getenv("LEARNY_TELEMETRY_LOG", "1") != "0" else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": DEFAULT_LOG_FORMAT},
                "telemetry": {"format": TELEMETRY_LOG_FORMAT},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
                "telemetry": {
                    "class": "logging.StreamHandler",
                    "formatter": "telemetry",
                },
            },
            "loggers": {
                "learny": {"level": level},
                "learny.telemetry": {
                    "level": telemetry_level,
                    "handlers": ["telemetry"],
                    "propagate": False,
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if _flag("LEARNY_DEBUG_HTTP"):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
    if _flag("LEARNY_DATABASE_ECHO"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
