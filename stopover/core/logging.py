import logging
from typing import Optional

from fastapi.logger import logger as fastapi_logger


def setup_logging(level: Optional[str] = None):
    logging_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    log_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=logging_format,
        datefmt=date_format
    )

    # FastAPI logger shares uvicorn's handlers
    fastapi_logger.handlers = logging.getLogger("uvicorn").handlers
    fastapi_logger.setLevel(log_level)

    # googlemaps logs every request at INFO
    logging.getLogger("googlemaps").setLevel(logging.WARNING)
