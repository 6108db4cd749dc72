"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from probatedesk.core.config import settings
from probatedesk.core.errors import ValidationError, WorkflowError
from probatedesk.core.structured_logging import build_log_context
from probatedesk.db.session import engine

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Matters carry estate and family PII
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from probatedesk.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="ProbateDesk API",
    description="BC probate case workflow engine",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)


# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Translate service errors into client-safe JSON."""
    if exc.status_code >= 500:
        logger.error(
            "Upstream failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.detail,
            extra=build_log_context(
                route=request.url.path,
                method=request.method,
                matter_id=request.path_params.get("matter_id"),
                request_id=request.headers.get("X-Request-ID"),
            ),
        )
    body: dict = {"detail": exc.detail}
    if isinstance(exc, ValidationError) and exc.fields:
        body["fields"] = exc.fields
    return JSONResponse(status_code=exc.status_code, content=body)


# ============================================================================
# Routers
# ============================================================================

from probatedesk.routers import auth, documents, intake, ops, portal, resume, scheduling

app.include_router(auth.router, prefix="/auth", tags=["auth"])

# Client portal
app.include_router(intake.router, prefix="/intake", tags=["intake"])
app.include_router(portal.router, prefix="/portal", tags=["portal"])
app.include_router(documents.router, prefix="/portal", tags=["documents"])
app.include_router(scheduling.router, prefix="/portal", tags=["scheduling"])

# Resume links (public redeem)
app.include_router(resume.router, tags=["resume"])

# Ops console (ops role only)
app.include_router(ops.router, prefix="/ops", tags=["ops"])

# Dev router (ONLY mounted in dev mode)
if settings.ENV == "dev":
    from probatedesk.routers import dev
    app.include_router(dev.router, prefix="/dev", tags=["dev"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
