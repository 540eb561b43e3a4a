"""
Structured Logging Infrastructure

JSON logs in production, readable lines in development. Every record carries
a correlation ID so one poll cycle or one Telegram callback can be followed
end to end.

    logger = get_logger(__name__)
    logger.info("Live event notified", extra_data={"event_id": "3f9a0c1b2d4e"})
"""
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

_app_name: str = "footbot"

# ספריות צד שלישי רועשות - רק אזהרות ומעלה
_QUIET_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "celery": logging.INFO,
}

_HUMAN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | [%(correlation_id)s] | %(message)s%(extra_suffix)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra_data`` lands under ``extra``"""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "app": _app_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["extra"] = extra_data

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods accept ``extra_data=``.

    The dict is attached to the record and rendered by the formatters; the
    standard ``extra=`` keyword keeps working alongside it.
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra_data: dict[str, Any] | None = None,
    ) -> None:
        if extra_data:
            extra = {**(extra or {}), "extra_data": extra_data}
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            # skip this frame so funcName/lineno point at the caller
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` and a compact ``extra_suffix`` for the human format"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        extra_data = getattr(record, "extra_data", None)
        record.extra_suffix = (
            " | " + " ".join(f"{key}={value}" for key, value in extra_data.items())
            if extra_data
            else ""
        )
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    app_name: str = "footbot"
) -> None:
    """
    Configure the root logger once per process (web app or Celery worker).

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines for production, readable lines otherwise
        app_name: Application name stamped on JSON records
    """
    global _app_name
    _app_name = app_name
    numeric_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context (request, task, poll cycle)"""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> str:
    """Current correlation ID; one is generated and bound if none is set yet"""
    cid = correlation_id_var.get()
    if not cid:
        cid = set_correlation_id()
    return cid


def get_logger(name: str) -> StructuredLogger:
    return logging.getLogger(name)  # type: ignore[return-value]


def log_async_operation(operation_name: str):
    """Decorator: debug line on start, info line with duration on success, error on failure"""
    def decorator(func):
        logger = get_logger(func.__module__)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            started = time.monotonic()
            logger.debug(f"Starting {operation_name}", extra_data={"operation": operation_name})

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {operation_name}",
                    extra_data={
                        "operation": operation_name,
                        "duration_seconds": round(time.monotonic() - started, 4),
                        "error": str(e),
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                f"Completed {operation_name}",
                extra_data={
                    "operation": operation_name,
                    "duration_seconds": round(time.monotonic() - started, 4),
                },
            )
            return result

        return wrapper
    return decorator
