"""JSON logging with per-request context for the workflow and session services."""

import logging
import os
import sys
from contextvars import ContextVar
from typing import Optional
from pythonjsonlogger import jsonlogger

correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# requests/urllib3 log every daemon poll at DEBUG
QUIET_LOGGERS = ("urllib3", "celery", "kombu")


class RequestContextFilter(logging.Filter):
    """Stamps records with the service, correlation id and acting user"""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record):
        record.service = self.service_name
        record.correlation_id = correlation_id_var.get('')
        record.user_id = user_id_var.get('')
        return True


def setup_logging(service_name: str, level: Optional[str] = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(service)s %(name)s %(levelname)s %(correlation_id)s %(user_id)s %(message)s',
        rename_fields={'asctime': 'timestamp', 'name': 'logger', 'levelname': 'level'}
    ))
    handler.addFilter(RequestContextFilter(service_name))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("Logging configured", extra={"log_level": logging.getLevelName(root.level)})


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    return correlation_id_var.get('')


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)
