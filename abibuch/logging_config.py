"""
logging_config.py — Loguru setup for Abibuch

Every log line carries the request id bound by the request middleware
("-" outside a request). Stdlib loggers (getLogger(__name__) in the
services, uvicorn, sqlalchemy) are forwarded to Loguru.

  APP_ENV=production  JSON lines on stdout + rotating JSON file in LOG_DIR
  otherwise           colored one-line format on stdout

Called by: abibuch/main.py (lifespan), scripts/create_admin.py
Depends on: environment (APP_ENV, LOG_LEVEL, LOG_DIR)
"""

import logging
import os
import sys

from loguru import logger

NO_REQUEST = "-"
LOG_FILE = "abibuch.log"
QUIET_LOGGERS = ("multipart", "uvicorn.access", "sqlalchemy.engine")

DEV_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>{extra[request_id]}</magenta> | {message}"
)


def setup_logging() -> None:
    logger.remove()
    logger.configure(extra={"request_id": NO_REQUEST})

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    production = os.getenv("APP_ENV", "development").lower() == "production"

    if production:
        logger.add(sys.stdout, level=level, format="{message}", serialize=True)
        logger.add(
            os.path.join(os.getenv("LOG_DIR", "logs"), LOG_FILE),
            level=level,
            rotation="20 MB",
            retention="14 days",
            compression="gz",
            serialize=True,
        )
    else:
        logger.add(sys.stdout, level=level, format=DEV_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, production=production)


class _InterceptHandler(logging.Handler):
    """Forwards stdlib records to Loguru, attributed to the original caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
