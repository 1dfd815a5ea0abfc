"""Admissions CRM API application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from admissions.core.config import settings
from admissions.core.deps import CSRF_HEADER
from admissions.core.rate_limit import limiter
from admissions.db.session import engine
from admissions.routers import internal_router, leads_router, management_router, presence_router

logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    """Report unhandled errors to Sentry outside local development."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # leads hold parent contact details
    )
    logger.info("Sentry initialized for %s", settings.ENV)


_init_sentry()

is_dev = settings.ENV == "dev"
app = FastAPI(
    title="Admissions CRM API",
    description="Lead intake, counselor assignment and presence tracking",
    version=settings.VERSION,
    docs_url="/docs" if is_dev else None,
    redoc_url="/redoc" if is_dev else None,
)

# Public enquiry form throttling
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Session cookie is sent cross-origin from the staff frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", CSRF_HEADER],
)

app.include_router(leads_router)
app.include_router(presence_router)
app.include_router(management_router)
# Cron-only, guarded by X-Internal-Secret
app.include_router(internal_router)


@app.get("/health")
def health():
    """Liveness plus a database round trip."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
