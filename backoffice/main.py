# backoffice/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.api.dependencies import get_stores
from backoffice.api.middleware import CorrelationIdMiddleware, RequestAuditMiddleware
from backoffice.api.routers import (
    admin,
    audit,
    auth,
    health,
    matching,
    milestones,
    notifications,
    permissions,
    projects,
    quality,
    requirements,
    support,
    tasks,
)
from backoffice.application.exceptions import ApplicationError, ConflictError, NotFoundError
from backoffice.config.logging import configure_logging
from backoffice.config.settings import get_settings
from backoffice.domain.exceptions import DomainError, DomainValidationError
from backoffice.infrastructure.storage.stores import init_stores
from backoffice.security.exceptions import AuthenticationError, AuthorizationError

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Migrate the legacy auth file and create missing collection files before serving."""
    await init_stores(get_stores())
    logger.info("stores_initialized")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Middleware order: last added runs first (outermost). Request flow: CORS -> CorrelationId -> RequestAudit.
app.add_middleware(RequestAuditMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=bool(settings.cors_origin_list),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"detail": exc.message})


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    logger.error("application_error", extra={"error": exc.message, "code": exc.code})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.error("unhandled_error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /auth, /admin, /api/*
app.include_router(health.router)
app.include_router(auth.router, prefix="/auth")
app.include_router(admin.router, prefix="/admin")
app.include_router(permissions.router, prefix="/api/permissions")
app.include_router(audit.router, prefix="/api/audit")
app.include_router(notifications.router, prefix="/api/notifications")
app.include_router(requirements.router, prefix="/api/requirements")
app.include_router(projects.router, prefix="/api/projects")
app.include_router(tasks.router, prefix="/api/projects")
app.include_router(milestones.router, prefix="/api/projects")
app.include_router(matching.router, prefix="/api/matching")
app.include_router(quality.router, prefix="/api")
app.include_router(support.router, prefix="/api/support")
