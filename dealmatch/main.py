import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from dealmatch.core.cache import close_redis_pool
from dealmatch.core.chat_channel import chat_channel
from dealmatch.core.config import settings
from dealmatch.core.exceptions import DealMatchError
from dealmatch.core.logging import bind_request_context, configure_logging
from dealmatch.api.v1 import deals, matches, swipes
from dealmatch.api.v1 import websocket

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the realtime relay and shared Redis pool."""
    configure_logging(settings.app_env, settings.log_level)
    await chat_channel.start()
    logger.info(f"DealMatch API started (env={settings.app_env}, realtime={settings.realtime_backend})")

    yield

    await chat_channel.stop()
    await close_redis_pool()
    logger.info("DealMatch API stopped")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line emitted while handling a request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        bind_request_context(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app = FastAPI(
    title="DealMatch API",
    description="Swipe on deals, match with people who liked the same deal, and chat",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DealMatchError)
async def dealmatch_error_handler(request: Request, exc: DealMatchError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, "retryable": exc.retryable},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Database error", "code": "database_error", "retryable": False},
    )


# Include API routers
app.include_router(swipes.router, prefix="/api/v1/swipes", tags=["Swipes"])
app.include_router(deals.router, prefix="/api/v1/deals", tags=["Deals"])
app.include_router(matches.router, prefix="/api/v1/matches", tags=["Matches"])
# WebSocket endpoint for live match chat
app.include_router(websocket.router, tags=["WebSocket"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "version": "1.0.0", "realtime": chat_channel.get_subscription_count()}


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "DealMatch API", "docs": "/docs"}
