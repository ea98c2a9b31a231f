# backend/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import time
import logging

from app.core.config import settings
from app.core.limiter import limiter
from app.apis.v1 import api_router
from app.services.sync_service import get_sync_service, shutdown_sync_service
from app.core.exception import (
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler
)

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Builds broker adapters on startup and closes their HTTP pools on shutdown.
    """
    # --- Startup ---
    logger.info(f"🚀 Starting {settings.APP_NAME} in {settings.ENVIRONMENT} mode...")

    service = get_sync_service()
    logger.info(f"Registered brokers: {', '.join(cfg.name for cfg in service.list_brokers())}")

    logger.info("🗺️  AVAILABLE ROUTES:")
    for route in app.routes:
        if hasattr(route, "methods"):
            logger.info(f"   {route.methods} {route.path}")
        else:
            logger.info(f"   {route.path}")

    yield

    # --- Shutdown ---
    logger.info("🛑 Shutting down application...")
    await shutdown_sync_service()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url=None
)
app.state.limiter = limiter

# --- Exception Handlers ---
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Middleware ---
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Router Registration ---
app.include_router(api_router, prefix="/api/v1")

# --- Core Endpoints ---
@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }

@app.get("/", tags=["System"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/docs" if settings.ENVIRONMENT != "production" else "Hidden"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.SERVER_HOST, port=settings.SERVER_PORT, reload=True)
