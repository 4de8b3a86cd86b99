"""
Request Context Middleware.

Request ID propagation, timing and structlog context binding.
"""

import uuid
from datetime import datetime, timezone

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from eshop.backend.core.logging import get_logger

logger = get_logger(__name__)

# Callers of the API: the storefront, the admin panel, the CLI and the chat widget
KNOWN_FRONTENDS = {"web", "admin", "cli", "widget", "telegram", "internal"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Adds request context to every request.

    Headers read:
        X-Request-ID: reused when present, generated otherwise
        X-Frontend-ID: caller identifier, "unknown" if not recognised

    Headers written:
        X-Request-ID, X-Response-Time (milliseconds)

    Every log record emitted while the request runs carries request_id,
    frontend, method and path. Handlers can read request.state.request_id,
    request.state.frontend and request.state.start_time.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        frontend = request.headers.get("X-Frontend-ID", "unknown").lower()
        if frontend not in KNOWN_FRONTENDS:
            frontend = "unknown"

        start_time = datetime.now(timezone.utc).replace(tzinfo=None)

        request.state.request_id = request_id
        request.state.frontend = frontend
        request.state.start_time = start_time

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            method=request.method,
            path=request.url.path,
        )

        logger.debug(
            "Request started",
            extra={
                "client_host": request.client.host if request.client else None,
                "user_agent": request.headers.get("User-Agent"),
            },
        )

        try:
            response = await call_next(request)

            duration_ms = _elapsed_ms(start_time)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"

            log = logger.info if _request_logging_enabled() else logger.debug
            log(
                "Request completed",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
            return response

        except Exception as exc:
            logger.error(
                "Request failed with exception",
                extra={
                    "duration_ms": _elapsed_ms(start_time),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()


def _elapsed_ms(start_time: datetime) -> int:
    end_time = datetime.now(timezone.utc).replace(tzinfo=None)
    return int((end_time - start_time).total_seconds() * 1000)


def _request_logging_enabled() -> bool:
    from eshop.backend.core.config import get_app_config

    return get_app_config().features.api_request_logging
