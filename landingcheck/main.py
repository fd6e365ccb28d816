import hmac
import logging
import sys
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware
from landingcheck.api.routes import router
from landingcheck.config import settings
from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_loader import ReferenceLoadError
from landingcheck.schemas.error import ErrorResponse

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and load reference data into the process cache."""
    if settings.REFRESH_ON_STARTUP:
        from landingcheck.database import SessionLocal, init_db
        from landingcheck.modules.refresh import refresh_all

        init_db()
        db = SessionLocal()
        try:
            counts = refresh_all(app.state.cache, db)
        except ReferenceLoadError as exc:
            logger.critical("FATAL: %s", exc)
            sys.exit(1)
        finally:
            db.close()
        logger.info("Startup refresh complete: %s", counts)
    yield


app = FastAPI(
    title="LandingCheck",
    description=(
        "Reconciles catch certificates against recorded landings: reference data cache, "
        "risk scoring, evidence-of-date rules and missing-landing investigation."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

# One cache per process; routes reach it through request.app.state
app.state.cache = ReferenceDataCache()

# CORS — origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Simple API key check. If LANDINGCHECK_API_KEY is unset, all requests pass."""

    async def dispatch(self, request: Request, call_next):
        if settings.LANDINGCHECK_API_KEY is not None:
            if request.url.path not in ("/health", "/docs", "/openapi.json", "/redoc"):
                api_key = request.headers.get("X-API-Key")
                if not hmac.compare_digest(api_key or "", settings.LANDINGCHECK_API_KEY):
                    return JSONResponse(
                        status_code=401,
                        content={"detail": "Invalid or missing API key"},
                    )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ReferenceLoadError)
async def reference_load_error_handler(request: Request, exc: ReferenceLoadError):
    logger.error("Reference data load failed on %s: %s", request.url.path, exc)
    body = ErrorResponse(error="Reference data unavailable", detail=exc.cause, category=exc.category)
    return JSONResponse(status_code=502, content=body.model_dump(exclude_none=True))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    body = ErrorResponse(error="Validation error", detail=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump(exclude_none=True))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    body = ErrorResponse(error="Conflict", detail=str(exc.orig) if exc.orig else str(exc))
    return JSONResponse(status_code=409, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    body = ErrorResponse(error="Internal server error", detail="An unexpected error occurred.")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


@app.get("/health")
def health(request: Request) -> dict:
    return {"status": "ok", "version": "0.1.0", "referenceData": request.app.state.cache.category_counts()}
