import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

# === Configurable via ENV ===
LOG_DIR = Path(os.getenv("LOG_DIR", "./logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
USE_JSON_LOGGING = os.getenv("USE_JSON_LOGGING", "false").lower() == "true"
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
SERVICE_NAME = os.getenv("SERVICE_NAME", "interview-scheduling")
SENTRY_DSN = os.getenv("SENTRY_DSN", "")

LOG_DIR.mkdir(parents=True, exist_ok=True)

_sentry_initialized = False


def get_formatter(use_json: bool, service: str) -> logging.Formatter:
    if use_json:
        return JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level"},
            static_fields={"service": service, "environment": ENVIRONMENT},
        )
    return logging.Formatter(
        fmt=f"%(asctime)s | %(levelname)s | %(name)s | [svc={service}] | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = LOG_LEVEL,
    use_json: bool = USE_JSON_LOGGING,
    service: str = SERVICE_NAME
) -> logging.Logger:
    """
    Sets up a logger with rotating file + stream handler
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # Avoid double logging in root

    # Clear old handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = get_formatter(use_json, service)

    # === Stream Handler (STDOUT) ===
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # === File Handler (Rotating) ===
    if log_file:
        file_path = LOG_DIR / log_file
        file_handler = RotatingFileHandler(str(file_path), maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # === Sentry Integration (Optional, once per process) ===
    global _sentry_initialized
    if SENTRY_DSN and not _sentry_initialized:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_logging = LoggingIntegration(
            level=logging.ERROR,
            event_level=logging.ERROR
        )
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=ENVIRONMENT,
            integrations=[sentry_logging],
            traces_sample_rate=0.05,
        )
        _sentry_initialized = True
        logger.info("[Logging] Sentry integration initialized.")

    return logger


# === Preconfigured loggers ===
app_logger = setup_logger("app", log_file="app.log")
scheduling_logger = setup_logger("scheduling", log_file="scheduling.log")
meeting_logger = setup_logger("meetings", log_file="meetings.log")
notification_logger = setup_logger("notifications", log_file="notifications.log")
