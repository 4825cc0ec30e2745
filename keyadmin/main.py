# keyadmin/main.py

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from keyadmin.api.middleware import (
    CorrelationIdMiddleware,
    GatekeeperMiddleware,
    RequestAuditMiddleware,
)
from keyadmin.api.routers import auth, cron, customers, dashboard, health
from keyadmin.application.exceptions import (
    ApplicationError,
    CustomerBusyError,
    UpstreamError,
)
from keyadmin.config.logging import configure_logging
from keyadmin.config.settings import get_settings
from keyadmin.domain.exceptions import (
    ConflictError,
    CustomerNotFoundError,
    DomainError,
    DomainValidationError,
)
from keyadmin.security.exceptions import AuthError

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> RequestAudit -> Gatekeeper.
app.add_middleware(GatekeeperMiddleware)
app.add_middleware(RequestAuditMiddleware)
app.add_middleware(CorrelationIdMiddleware)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request, exc: RequestValidationError):
    return _error(400, "Invalid request body")


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return _error(400, exc.message)


@app.exception_handler(CustomerNotFoundError)
async def not_found_error_handler(request, exc: CustomerNotFoundError):
    return _error(404, exc.message)


@app.exception_handler(ConflictError)
async def conflict_error_handler(request, exc: ConflictError):
    return _error(400, exc.message)


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return _error(400, exc.message)


@app.exception_handler(AuthError)
async def auth_error_handler(request, exc: AuthError):
    return _error(401, exc.message)


@app.exception_handler(CustomerBusyError)
async def customer_busy_error_handler(request, exc: CustomerBusyError):
    return _error(409, exc.message)


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request, exc: UpstreamError):
    logger.error(
        "upstream_error",
        extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
    )
    return _error(500, exc.message)


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    logger.error("application_error", extra={"path": request.url.path, "error": exc.message})
    return _error(500, exc.message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return _error(500, "Internal server error")


# Routers: /health, /dashboard, /api/auth, /api/cron, /api/customers
app.include_router(health.router)
app.include_router(dashboard.router)
app.include_router(auth.router, prefix="/api/auth")
app.include_router(cron.router, prefix="/api/cron")
app.include_router(customers.router, prefix="/api/customers")
