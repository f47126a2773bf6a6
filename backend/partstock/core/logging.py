"""
Structured logging for PartStock.

Every record carries the request id and, once the request has been
attributed, the staff member (actor) performing it. Records are JSON in
production and a single readable line elsewhere.
"""
import inspect
import json
import logging
import time
import uuid
from contextvars import ContextVar
from functools import wraps
from typing import Optional, Any, Dict

from partstock.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
request_start_var: ContextVar[Optional[float]] = ContextVar('request_start', default=None)
actor_var: ContextVar[Optional[str]] = ContextVar('actor', default=None)


def configure_logging() -> None:
    """Configure the root logger once from settings.LOG_LEVEL."""
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def elapsed_ms() -> Optional[float]:
    """Milliseconds since the current request started, if inside one."""
    start = request_start_var.get()
    if start is None:
        return None
    return round((time.time() - start) * 1000, 2)


class StructuredLogger:
    """Thin wrapper over a stdlib logger that adds request context."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self._as_json = settings.APP_ENV == 'production'

    def _record(self, level: str, message: str, context: Dict[str, Any], error: Optional[Exception]) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%S%z'),
            'level': level,
            'logger': self.name,
            'env': settings.APP_ENV,
            'message': message,
        }
        for key, value in (('request_id', request_id_var.get()), ('actor', actor_var.get()), ('duration_ms', elapsed_ms())):
            if value is not None and key not in context:
                record[key] = value
        if context:
            record['context'] = context
        if error is not None:
            record['error'] = {'type': type(error).__name__, 'message': str(error)}
        return record

    def _render(self, record: Dict[str, Any]) -> str:
        if self._as_json:
            return json.dumps(record, default=str)

        line = f"[{record.get('request_id', '-')}] {record['message']}"
        if 'actor' in record:
            line += f" (by {record['actor']})"
        if 'context' in record:
            line += ' | ' + ' '.join(f"{k}={v}" for k, v in record['context'].items())
        if 'error' in record:
            line += f" | error={record['error']['type']}: {record['error']['message']}"
        if 'duration_ms' in record:
            line += f" | {record['duration_ms']}ms"
        return line

    def _emit(self, level: int, message: str, error: Optional[Exception] = None, **context):
        if not self.logger.isEnabledFor(level):
            return
        record = self._record(logging.getLevelName(level), message, context, error)
        self.logger.log(level, self._render(record))

    def debug(self, message: str, **context):
        self._emit(logging.DEBUG, message, **context)

    def info(self, message: str, **context):
        self._emit(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self._emit(logging.WARNING, message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        self._emit(logging.ERROR, message, error, **context)


def get_logger(name: str = 'partstock') -> StructuredLogger:
    return StructuredLogger(name)


api_logger = get_logger('partstock.api')
inventory_logger = get_logger('partstock.inventory')
reservations_logger = get_logger('partstock.reservations')
reports_logger = get_logger('partstock.reports')
maintenance_logger = get_logger('partstock.maintenance')


def log_operation(operation: str, logger: Optional[StructuredLogger] = None):
    """
    Log start, completion time and failure of a service call.

    Works on coroutines and plain functions:

        @log_operation("generate_reconciliation", reports_logger)
        async def generate_reconciliation(session, report_date=None, ...):
            ...
    """
    log = logger or api_logger

    def finished(started: float) -> float:
        return round((time.time() - started) * 1000, 2)

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                started = time.time()
                log.debug(f"{operation} started")
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    log.error(f"{operation} failed", error=e, duration_ms=finished(started))
                    raise
                log.info(f"{operation} completed", duration_ms=finished(started))
                return result
        else:
            @wraps(func)
            def wrapper(*args, **kwargs):
                started = time.time()
                log.debug(f"{operation} started")
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    log.error(f"{operation} failed", error=e, duration_ms=finished(started))
                    raise
                log.info(f"{operation} completed", duration_ms=finished(started))
                return result
        return wrapper

    return decorator
