"""
Accredit FastAPI Application - Main entry point.

Student organization accreditation service:

- Submissions: public application form with email verification
- Applications: OSAS review; approval provisions accounts and the entity
- Events: event proposals and the adviser/OSAS document pipeline
- Officials: officers and members of organizations and councils
- Registry: colleges, courses, MIS coordinators, recognition status
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accredit.core.config import settings
from accredit.core.exceptions import (
    WorkflowError, InvalidInputError, NotFoundError, ConflictError,
    StateViolationError, CooldownError, NoActiveTermError, StorageError
)
from accredit.db.base import init_db
from accredit.schemas.common import HealthResponse
from accredit.api.v1 import auth, submissions, applications, events, officials, registry

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidInputError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    StateViolationError: 409,
    CooldownError: 429,
    NoActiveTermError: 503,
    StorageError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Note: In production, manage the schema with migrations instead
    await init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Student organization accreditation and event approval workflow.",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 ENDPOINTS
# ============================================================================

app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(
    submissions.router,
    prefix=f"{settings.API_V1_PREFIX}/submissions",
    tags=["submissions"]
)
app.include_router(
    applications.router,
    prefix=f"{settings.API_V1_PREFIX}/applications",
    tags=["applications"]
)
app.include_router(events.router, prefix=f"{settings.API_V1_PREFIX}/events", tags=["events"])
app.include_router(
    officials.router,
    prefix=f"{settings.API_V1_PREFIX}/officials",
    tags=["officials"]
)
app.include_router(
    registry.router,
    prefix=f"{settings.API_V1_PREFIX}/registry",
    tags=["registry"]
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """Map workflow errors to HTTP responses carrying a stable error code."""
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        400
    )
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, StateViolationError) and exc.current_state:
        content["current_state"] = exc.current_state
    headers = None
    if isinstance(exc, CooldownError):
        headers = {"Retry-After": str(exc.retry_after)}
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "accredit.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
