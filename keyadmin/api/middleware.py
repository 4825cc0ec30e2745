"""API middleware: correlation ID, request audit, session gatekeeper."""

import logging
import uuid
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from keyadmin.config.settings import get_settings
from keyadmin.core.context import correlation_id_ctx
from keyadmin.security import read_session_token, verify_cron_secret, verify_session_token

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
CRON_SECRET_HEADER = "x-cron-secret"

GATED_PREFIXES = ("/api", "/dashboard")
PUBLIC_API_PATHS = frozenset({"/api/auth/login", "/api/auth/logout"})
CRON_PATH = "/api/cron/expire"
LOGIN_PAGE = "/login"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_gated(path: str) -> bool:
    return any(_under(path, prefix) for prefix in GATED_PREFIXES)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve correlation ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        correlation_id_ctx.set(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class GatekeeperMiddleware(BaseHTTPMiddleware):
    """
    Session check in front of /api and /dashboard. API paths answer with JSON
    errors, UI paths redirect to the login page. A verified session is put on
    request.state.session; nothing else about the request is changed.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not is_gated(path) or path in PUBLIC_API_PATHS:
            return await call_next(request)

        settings = get_settings()
        is_api = _under(path, "/api")

        if path == CRON_PATH and verify_cron_secret(
            request.headers.get(CRON_SECRET_HEADER), settings.cron_secret
        ):
            return await call_next(request)

        if not settings.session_secret:
            logger.error("session_secret_missing", extra={"path": path})
            if is_api:
                return JSONResponse(status_code=500, content={"error": "Server misconfigured"})
            return RedirectResponse(LOGIN_PAGE)

        session = verify_session_token(read_session_token(request), settings.session_secret)
        if session is None:
            if is_api:
                return JSONResponse(status_code=401, content={"error": "Unauthorized"})
            return RedirectResponse(f"{LOGIN_PAGE}?{urlencode({'next': path})}")

        request.state.session = session
        return await call_next(request)


class RequestAuditMiddleware(BaseHTTPMiddleware):
    """After response: log one structured request_audit line (path, method, status_code)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        logger.info(
            "request_audit",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
            },
        )
        return response
