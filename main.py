"""
HD Notes API - FastAPI Application

Modular monolith architecture with:
- MongoDB connection pool (shared/persistance)
- Auth module (modules/auth)
  - services/: tokens, OTP policy, registration/login flows
  - http_handlers/: FastAPI routes and bearer authentication
- Notes module (modules/notes)
  - services/: per-user note CRUD
  - http_handlers/: FastAPI routes
- Service container (modules/container.py), built once per app
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

# Load environment variables first
load_dotenv()

from config.settings import Settings, settings
from shared.persistance.mongo_db import mongo_pool, ensure_indexes
from shared.http.errors import register_exception_handlers
from shared.http.responses import error_response, success_response
from shared.services.logger import get_logger, setup_logging
from modules.container import Container
from modules.auth.http_handlers import auth_router
from modules.notes.http_handlers import notes_router


logger = get_logger(__name__)

SERVICE_NAME = "HD Notes API"
VERSION = "1.0.0"

# Same defaults helmet applies
SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Manages MongoDB connection pool startup/shutdown.
    """
    app_settings: Settings = app.state.settings
    logger.info(f"Starting {SERVICE_NAME} ({app_settings.ENVIRONMENT})...")

    try:
        mongo_pool.connect(app_settings.MONGO_URI)
        ensure_indexes(
            mongo_pool.get_database(app_settings.MONGO_DB),
            users_collection=app_settings.USERS_COLLECTION,
            notes_collection=app_settings.NOTES_COLLECTION,
        )
        logger.info(f"MongoDB connected to {app_settings.MONGO_DB}")
    except Exception as e:
        logger.critical(f"MongoDB connection failed: {e}")
        raise

    yield

    logger.info(f"Shutting down {SERVICE_NAME}...")
    app.state.container.close()
    mongo_pool.close()
    logger.info("MongoDB connection closed")


def create_app(
    app_settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """Build the application. Tests pass their own settings and container."""
    app_settings = app_settings or settings
    setup_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Notes with email/password and Google sign-in, verified by email OTP",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.container = container or Container()

    # Rate limiting (per client IP)
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[app_settings.RATE_LIMIT],
        enabled=app_settings.RATE_LIMIT_ENABLED,
    )
    app.add_middleware(SlowAPIMiddleware)

    max_body_bytes = app_settings.MAX_BODY_BYTES

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_body_bytes:
            logger.warning(f"Rejected {request.method} {request.url.path}: body of {content_length} bytes")
            return error_response(413, "Request entity too large")
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # CORS wraps the body limit so a 413 still carries CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.FRONTEND_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        return response

    # Include routers from modules
    app.include_router(auth_router, prefix=app_settings.API_PREFIX)
    app.include_router(notes_router, prefix=app_settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "status": "healthy",
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        try:
            # Test MongoDB connection
            mongo_pool.client.admin.command("ping")
            mongo_status = "connected"
        except Exception as e:
            logger.warning(f"Health check - MongoDB unavailable: {e}")
            mongo_status = "unavailable"

        return success_response(
            "Server is healthy" if mongo_status == "connected" else "Server is degraded",
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "mongodb": mongo_status,
                "database": app_settings.MONGO_DB,
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
    )
