import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .db.dal import Database
from .db.migrate import apply_migrations
from .core import errors
from .routers import health, payments, cache
from .services.preferences import PreferencesStore
from .services.rendering import Renderer
from .services.session import build_payment_session
from .services.stats_flusher import StatsFlusher

logger = logging.getLogger("qrpay")


def create_app(
    settings_override: Settings | None = None,
    renderer_override: Renderer | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    renderer_override: replaces the configured QR renderer (tests use fakes).
    """
    settings = settings_override or get_settings()
    if settings.db_path is None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug, json_output=settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            apply_migrations(settings.db_path)  # type: ignore[arg-type]
        except Exception:
            # Failing to init DB is fatal; re-raise after logging
            logger.exception("failed to apply migrations on startup")
            raise

        store = PreferencesStore(Database(settings.db_path))  # type: ignore[arg-type]
        session = build_payment_session(settings, store, renderer_override)
        await session.refresh()
        flusher = StatsFlusher(session.cache, store, settings.stats_flush_interval_seconds)
        app.state.session = session
        app.state.flusher = flusher
        await flusher.start()

        preload_task = None
        if settings.preload_on_startup:
            preload_task = asyncio.create_task(session.preload_common())
        logger.info("startup complete", extra={"fields": {"db": str(settings.db_path)}})
        try:
            yield
        finally:
            if preload_task is not None and not preload_task.done():
                preload_task.cancel()
            await flusher.stop()
            logger.info("shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(payments.router)
    app.include_router(cache.router)

    @app.get("/")
    async def root():
        return {"message": "QR Payments API", "version": settings.version}

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("qrpay.main:create_app", factory=True, host="127.0.0.1", port=8000)
