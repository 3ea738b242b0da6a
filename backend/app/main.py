import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import itinerary, travel_time
from app.api.deps import limiter, settings
from app.core.errors import PlannerError, VersionConflictError
from app.core.settings import Settings
from app.db.session import db_manager
from app.middleware.logging import RequestLoggingMiddleware

API_VERSION = "1.0.0"

# key=... query parameters (Distance Matrix and Places URLs end up in logs)
_QUERY_KEY = re.compile(r'([?&]key=)[^&\s]+')
# bare Google API keys
_GOOGLE_KEY = re.compile(r'AIza[0-9A-Za-z\-_]{35}')


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _GOOGLE_KEY.sub('REDACTED', _QUERY_KEY.sub(r'\1REDACTED', value))
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}
    return value


def redact_api_keys(logger, method_name, event_dict):
    """structlog processor: mask API keys anywhere in the event"""
    for key, value in list(event_dict.items()):
        event_dict[key] = _scrub(value)
    return event_dict


def configure_logging(config: Settings) -> None:
    """JSON events through structlog, written by stdlib handlers to stderr and LOG_FILE"""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_api_keys,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(message)s',
        handlers=[logging.StreamHandler(), logging.FileHandler(config.LOG_FILE)],
    )


configure_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup", version=API_VERSION)
    try:
        await db_manager.initialize()
        await db_manager.init_db()
    except Exception:
        logger.exception("database_startup_failed")
        raise

    yield

    logger.info("shutdown")
    try:
        await db_manager.close()
    except Exception as e:
        logger.error("database_shutdown_failed", error=str(e))


app = FastAPI(
    title="Itinerary Planner API",
    description="Day-by-day trip scheduling with validated, versioned plans",
    version=API_VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(PlannerError)
async def planner_exception_handler(request: Request, exc: PlannerError):
    logger.warning(
        "planner_error",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )
    retryable = isinstance(exc, VersionConflictError)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "retryable": retryable},
        headers={"Retry-After": "1"} if retryable else None,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
def root():
    return {"status": "API active", "version": API_VERSION}


@app.get("/health")
async def health():
    """Service status; 503 while the database is unreachable"""
    database = await db_manager.health_check()
    healthy = database["status"] == "healthy"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "version": API_VERSION,
            "components": {"database": database["status"], "api": "healthy"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


app.include_router(itinerary.router, prefix="/api/v1")
app.include_router(travel_time.router, prefix="/api/v1")
