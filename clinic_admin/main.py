from fastapi import Depends, FastAPI, APIRouter, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import asyncio
import contextlib
import time
import logging

from .api.deps import get_current_identity
from .api.routes import appointments, auth, health, professionals
from .core.config import Settings, load_settings
from .core.database import build_engine, build_session_factory, init_db
from .core.registry import RevocationRegistry
from .core.security import AuthError
from .services.auth_service import TokenAuthority

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def sweep_expired_tokens(authority: TokenAuthority, interval: float):
    """Periodically drop expired entries so abandoned sessions do not pile up."""
    while True:
        await asyncio.sleep(interval)
        try:
            authority.purge_expired()
        except Exception:
            logger.exception("Expired token sweep failed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. Missing security settings abort here."""
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Administrative API for the clinic agenda",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # One registry and authority per process, shared by every request
    registry = RevocationRegistry()
    app.state.settings = settings
    app.state.token_authority = TokenAuthority.from_settings(settings, registry)
    app.state.engine = build_engine(settings.get_database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.sweeper = None

    # Middleware setup
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

    # Custom middleware for request logging and timing
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        # Log request
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

    # Exception handlers
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "code": exc.code},
            headers=headers
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": "The requested resource was not found",
                "path": str(request.url.path)
            }
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Internal server error: {type(exc).__name__}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred"
            }
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)

    api_router = APIRouter(prefix="/api", dependencies=[Depends(get_current_identity)])
    api_router.include_router(professionals.router)
    api_router.include_router(appointments.router)
    app.include_router(api_router)

    if settings.DEBUG:
        app.include_router(health.debug_router)

    # Startup and shutdown events
    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup."""
        logger.info(f"Starting {settings.APP_NAME}...")
        for name, value in settings.summary().items():
            logger.info(f"  {name}: {value}")

        # The API stays up without a database; /health reports it as degraded
        try:
            init_db(app.state.engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {type(e).__name__}")

        if settings.SESSION_SWEEP_INTERVAL_SECONDS:
            app.state.sweeper = asyncio.create_task(
                sweep_expired_tokens(
                    app.state.token_authority,
                    settings.SESSION_SWEEP_INTERVAL_SECONDS
                )
            )

        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on application shutdown."""
        logger.info(f"Shutting down {settings.APP_NAME}...")
        if app.state.sweeper is not None:
            app.state.sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await app.state.sweeper
            app.state.sweeper = None
        registry.clear()
        app.state.engine.dispose()

    return app


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "clinic_admin.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )


if __name__ == "__main__":
    run()
