"""
Request middleware and exception handlers.

Each request gets an id (taken from X-Request-ID or generated), echoed on the
response and attached to every log line and error body.
"""
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from partstock.core.logging import (
    api_logger,
    actor_var,
    elapsed_ms,
    generate_request_id,
    get_request_id,
    request_id_var,
    request_start_var,
)

# Probes are polled constantly; keep them out of the request log
QUIET_PATHS = ('/healthz', '/readyz', '/api/health')


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or get_request_id() or 'unknown'


def _error_response(status_code: int, detail, request_id: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'detail': detail, 'request_id': request_id},
        headers={**(headers or {}), 'X-Request-ID': request_id},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag, time and log every request; turn crashes into a 500 JSON body."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        request.state.request_id = request_id
        id_token = request_id_var.set(request_id)
        start_token = request_start_var.set(time.time())
        actor_token = actor_var.set(None)

        path = request.url.path
        quiet = path in QUIET_PATHS

        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(f"{request.method} {path} -> 500 (unhandled)", error=e)
            return _error_response(500, 'Internal server error', request_id)
        else:
            response.headers['X-Request-ID'] = request_id
            if not quiet:
                log = api_logger.info if response.status_code < 400 else api_logger.warning
                log(f"{request.method} {path} -> {response.status_code}", status=response.status_code)
            return response
        finally:
            request_id_var.reset(id_token)
            request_start_var.reset(start_token)
            actor_var.reset(actor_token)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Domain rejections (stock, state, not found) keep their detail and gain the request id."""
    if exc.status_code >= 500:
        api_logger.error(f"HTTP {exc.status_code}: {exc.detail}", path=request.url.path)
    else:
        api_logger.warning(f"HTTP {exc.status_code}: {exc.detail}", path=request.url.path)
    return _error_response(exc.status_code, exc.detail, _request_id(request), getattr(exc, 'headers', None))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything the routers did not turn into an HTTP error."""
    api_logger.error(
        f"Unhandled exception in {request.method} {request.url.path}",
        error=exc,
        duration_ms=elapsed_ms(),
    )
    return _error_response(500, 'Internal server error', _request_id(request))
