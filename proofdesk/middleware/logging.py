"""
Structured Logging Middleware

Every log record carries the id of the request being served and the tenant
id of the tenant scope that was open when the record was emitted, so service
log lines can be attributed to a tenant without passing it around.

The access log is written once per request by ``StructuredLoggingMiddleware``
with method, path, status, duration, client address and the inbound host.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from proofdesk.utils.request_scope import get_scoped_tenant_id

REQUEST_ID_HEADER = "X-Request-ID"
ACCESS_LOGGER = "proofdesk.access"

# Access log fields copied from ``extra`` into the JSON document
ACCESS_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip", "host", "host_slug", "error_code")

# Probes are not worth an access line each
QUIET_PATHS = frozenset({"/health"})

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestContextFilter(logging.Filter):
    """Stamp ``request_id`` and ``tenant_id`` (``-`` outside a tenant scope) on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        tenant_id = get_scoped_tenant_id()
        record.tenant_id = "-" if tenant_id is None else tenant_id
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        document = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
            "tenant_id": getattr(record, "tenant_id", "-"),
        }
        document.update({field: getattr(record, field) for field in ACCESS_FIELDS if hasattr(record, field)})
        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        return json.dumps(document, default=str)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Assign the request id, echo it on the response and write the access log line."""

    def __init__(self, app: ASGIApp, logger_name: str = ACCESS_LOGGER):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self._access(request, 500, started, error=type(e).__name__)
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            self._access(request, response.status_code, started)
            return response
        finally:
            request_id_var.reset(token)

    def _access(self, request: Request, status_code: int, started: float, error: str | None = None) -> None:
        if request.url.path in QUIET_PATHS:
            return
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        extra = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_ip": _client_ip(request),
            "host": getattr(request.state, "request_host", None),
            "host_slug": getattr(request.state, "host_slug", None),
        }
        if error:
            extra["error_code"] = error
        self.logger.log(
            _level_for(status_code),
            "%s %s -> %d (%.2fms)",
            request.method,
            request.url.path,
            status_code,
            duration_ms,
            extra=extra,
        )


def setup_structured_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stderr handler on the root logger."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [req=%(request_id)s tenant=%(tenant_id)s] %(message)s")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level.upper())

    # Chatty third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
