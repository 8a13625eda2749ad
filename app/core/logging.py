import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structured logging for the diagnostic service.

    Args:
        level: Root level override; settings.log_level when omitted.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root_logger.addHandler(handler)

    # Per-pattern scores are DEBUG; keep them out of production output
    if settings.environment != "local":
        logging.getLogger("diagnosis.evaluator").setLevel(logging.INFO)

    # Silence noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
