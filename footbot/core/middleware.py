"""
FastAPI Middleware

- Correlation ID per request (echoed in ``X-Correlation-ID``)
- Request logging; health probes are logged at debug level
- JSON error bodies for AppException and unexpected errors
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from footbot.core.exceptions import AppException, ErrorCode
from footbot.core.logging import get_correlation_id, get_logger, set_correlation_id

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# בדיקות liveness רצות כל כמה שניות - לא מציפים את הלוג
_PROBE_PATH_PREFIX = "/health"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        path = request.url.path
        log_data = {"method": request.method, "path": path}

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {path}",
                extra_data={
                    **log_data,
                    "duration_seconds": round(time.monotonic() - started, 4),
                    "error": str(e),
                },
                exc_info=True
            )
            raise

        if response.status_code >= 400:
            log = logger.warning
        elif path.startswith(_PROBE_PATH_PREFIX):
            log = logger.debug
        else:
            log = logger.info
        log(
            f"Request completed: {request.method} {path}",
            extra_data={
                **log_data,
                "status_code": response.status_code,
                "duration_seconds": round(time.monotonic() - started, 4),
            }
        )
        return response


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        f"Application exception: {exc.error_code.value}",
        extra_data={
            "error_code": exc.error_code.value,
            "message": exc.message,
            "details": exc.details,
            "path": request.url.path,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={CORRELATION_HEADER: get_correlation_id()}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unexpected errors: logged with traceback, answered without internals"""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra_data={
            "exception_type": type(exc).__name__,
            "message": str(exc),
            "path": request.url.path,
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
                "details": {}
            }
        },
        headers={CORRELATION_HEADER: get_correlation_id()}
    )


def setup_middleware(app: FastAPI) -> None:
    # ב-Starlette ה-middleware האחרון שנוסף הוא ה-outermost:
    # CorrelationId רץ ראשון כדי שלכל שורת לוג של הבקשה יהיה מזהה
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
