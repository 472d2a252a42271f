"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from siren import __version__
from siren.core.logging import get_logger, install_middlewares, setup_logging
from siren.core.settings import Settings, get_settings
from siren.domain.engine import EscalationEngine
from siren.domain.errors import ContactsUnavailable, InvalidSession
from siren.domain.timers import AsyncioTimerService, SchedulerTimerService, TimerService
from siren.integrations.contacts import ContactsClient
from siren.integrations.notifier import Notifier, get_notifier
from siren.services.sessions import SessionService
from siren.storage.interfaces import SessionStore
from siren.storage.memory import InMemorySessionStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    await app.state.timers.start()
    logger.info(
        "Siren started",
        app_env=app.state.settings.app_env,
        notifier=app.state.notifier.name,
        scheduler_enabled=app.state.settings.scheduler_enabled,
    )

    yield

    # Shutdown
    await app.state.engine.shutdown()
    await app.state.timers.shutdown()
    await app.state.notifier.aclose()
    await app.state.contacts_client.aclose()
    logger.info("Siren stopped")


def create_app(
    settings: Settings | None = None,
    notifier: Notifier | None = None,
    timers: TimerService | None = None,
    store: SessionStore | None = None,
    contacts_client: ContactsClient | None = None,
) -> FastAPI:
    """
    Application factory with settings and collaborator injection.

    Args:
        settings: Optional settings instance. If None, loads from environment.
        notifier: Optional notifier. If None, built from ``notifier_backend``.
        timers: Optional countdown backend. If None, APScheduler when
            ``scheduler_enabled`` and the event loop otherwise.
        store: Optional session store. Defaults to in-memory.
        contacts_client: Optional contacts backend client.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings.log_level)

    app = FastAPI(
        title="Siren",
        version=__version__,
        description="Check-in and escalation engine for personal safety sessions",
        lifespan=lifespan,
    )

    # Store components in app state for dependency injection
    app.state.settings = settings
    app.state.notifier = notifier or get_notifier(settings)
    app.state.timers = timers or (
        SchedulerTimerService() if settings.scheduler_enabled else AsyncioTimerService()
    )
    app.state.store = store or InMemorySessionStore()
    app.state.contacts_client = contacts_client or ContactsClient(settings.contacts_api_base)
    app.state.engine = EscalationEngine(
        notifier=app.state.notifier,
        store=app.state.store,
        timers=app.state.timers,
    )
    app.state.session_service = SessionService(
        engine=app.state.engine,
        settings=settings,
        contacts_client=app.state.contacts_client,
    )

    setup_middleware(app, settings)
    setup_routes(app, settings)
    setup_error_handlers(app)

    return app


def setup_middleware(app: FastAPI, settings: Settings):
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.app_env in ("local", "test") else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_middlewares(app)


def setup_routes(app: FastAPI, settings: Settings):
    """Configure application routes."""

    @app.get("/")
    async def root():
        return {
            "app": "siren",
            "version": __version__,
            "environment": settings.app_env,
            "docs": "/docs",
        }

    from siren.api import api_router, ops_router

    app.include_router(api_router)
    app.include_router(ops_router)


def setup_error_handlers(app: FastAPI):
    """Map domain errors to HTTP responses."""

    @app.exception_handler(InvalidSession)
    async def invalid_session_handler(request: Request, exc: InvalidSession):
        return JSONResponse(
            status_code=404,
            content={"detail": exc.reason, "session_id": exc.session_id},
        )

    @app.exception_handler(ContactsUnavailable)
    async def contacts_unavailable_handler(request: Request, exc: ContactsUnavailable):
        logger.warning("Contacts backend unavailable", error=str(exc), status_code=exc.status_code)
        return JSONResponse(status_code=502, content={"detail": str(exc)})
