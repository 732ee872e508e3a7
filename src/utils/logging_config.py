"""Structured logger setup shared across the loyalty Lambdas."""

import logging
import os

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "loyalty-engine"


def get_logger(name: str) -> logging.Logger:
    """
    Configure a JSON logger once and reuse it.

    Every record carries the service name so scoring, offer and churn logs can
    be filtered together; call sites add user_id/category/error via ``extra``.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(asctime)s",
        static_fields={"service": SERVICE_NAME},
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger
