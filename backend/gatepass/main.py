from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from gatepass.core.config import settings
from gatepass.core.database import init_db, close_db
from gatepass.core.exceptions import GatePassError, error_response
from gatepass.core.logging_config import logger
from gatepass.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from gatepass.core.rate_limiter import limiter, rate_limit_exceeded_handler
from gatepass.core.redis_client import redis_client
from gatepass.api.v1.router import api_router
from gatepass.services.notification_relay import notification_relay


def validate_critical_config():
    """Fail fast on settings that must never reach production"""
    if settings.is_production and settings.JWT_SECRET_KEY == "CHANGE_ME":
        logger.critical("[Startup] CRITICAL: JWT_SECRET_KEY is using the default value")
        raise RuntimeError("JWT_SECRET_KEY must be set in production")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    validate_critical_config()

    await init_db()
    logger.info("Database tables ready")

    if settings.NOTIFICATION_RELAY_ENABLED:
        notification_relay.start()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await notification_relay.stop()
    await redis_client.disconnect()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="College gate pass approvals, QR gate checks and live notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Add rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add middleware (order matters - last added runs first)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(GatePassError)
async def gatepass_exception_handler(request: Request, exc: GatePassError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    else:
        logger.warning(f"{exc.code}: {exc.message}", extra={"error_code": exc.code})
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": str(exc) if settings.DEBUG else "An error occurred",
                "details": {},
            },
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


# Include API router
app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gatepass.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
    )
