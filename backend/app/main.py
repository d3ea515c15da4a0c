import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.rate_limit import limiter
from app.database import get_db
from app.routers import capacity, coverage, duty_assignments, holidays, weeks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Holiday import reclaim background task
# ---------------------------------------------------------------------------
async def _import_reclaim_loop() -> None:
    """Fail pending holiday imports that exceeded the import timeout."""
    from app.database import session_scope
    from app.services.holiday_import_service import reclaim_stuck_imports

    while True:
        try:
            async with session_scope() as db:
                count = await reclaim_stuck_imports(db)
            if count:
                logger.info("Import reclaim: %d stuck imports failed", count)
        except Exception:
            logger.exception("Import reclaim error")

        await asyncio.sleep(settings.HOLIDAY_IMPORT_SWEEP_SECONDS)


# ---------------------------------------------------------------------------
# Lifespan context manager
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: runs on startup and shutdown."""
    logger.info("%s started", settings.APP_NAME)
    reclaim_task = asyncio.create_task(_import_reclaim_loop())
    yield
    reclaim_task.cancel()
    from app.core.redis_client import close_redis
    await close_redis()
    logger.info("%s shutting down", settings.APP_NAME)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# -- Middleware ---------------------------------------------------------------
@app.middleware("http")
async def fix_redirect_scheme(request: Request, call_next):
    """Ensure redirects use https when behind a TLS-terminating reverse proxy."""
    if request.headers.get("x-forwarded-proto") == "https":
        request.scope["scheme"] = "https"
    return await call_next(request)


app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# -- Errors and rate limiting -------------------------------------------------
register_exception_handlers(app)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check with DB and Redis connectivity verification."""
    from app.core.redis_client import get_redis

    checks: dict[str, str] = {"db": "ok", "redis": "ok"}

    try:
        await db.execute(select(1))
    except Exception:
        checks["db"] = "error"

    try:
        redis = await get_redis()
        if redis is None:
            checks["redis"] = "unavailable"
        else:
            await redis.ping()
    except Exception:
        checks["redis"] = "error"

    # "unavailable" = optional service not configured; only "error" = degraded
    degraded = any(v == "error" for v in checks.values())
    return {"status": "degraded" if degraded else "ok", "app": settings.APP_NAME, **checks}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(weeks.router, prefix=settings.API_V1_PREFIX)
app.include_router(duty_assignments.router, prefix=settings.API_V1_PREFIX)
app.include_router(coverage.router, prefix=settings.API_V1_PREFIX)
app.include_router(capacity.router, prefix=settings.API_V1_PREFIX)
app.include_router(holidays.router, prefix=settings.API_V1_PREFIX)
