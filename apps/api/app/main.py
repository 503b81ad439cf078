"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.core.config import settings
from app.core.migrations import ensure_migrations, ensure_reminder_schema
from app.db.session import engine

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
        send_default_pii=False,  # Recipients are client contact details
    )
    logging.info("Sentry initialized for error tracking")


# ============================================================================
# Startup
# ============================================================================

def _bootstrap_schema() -> None:
    """Bring the reminder schema up before serving (idempotent)."""
    if settings.AUTO_MIGRATE:
        ensure_migrations(engine, auto_migrate=True)
    created = ensure_reminder_schema(engine)
    if created:
        logger.info("Bootstrapped reminder tables: %s", ", ".join(created))


@asynccontextmanager
async def lifespan(app: FastAPI):
    _bootstrap_schema()
    yield


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    lifespan=lifespan,
    title="Reminder API",
    description="Hearing, filing, task and KYC reminder engine for the practice management API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Tenant-ID"],
)

# ============================================================================
# Routers
# ============================================================================

# Settings (tenant reminder configuration)
from app.routers import settings as settings_router
app.include_router(settings_router.router)

# Internal endpoints (scheduled/cron jobs, "run now" - protected by INTERNAL_SECRET)
from app.routers import internal
app.include_router(internal.router)


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
