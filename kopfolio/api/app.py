"""FastAPI application for kopfolio backups."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging
import os
import sys

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from kopfolio.config import KopfolioConfig
from kopfolio.backup import (
    ArchiveExporter,
    ArchiveImporter,
    DatabaseTools,
    ImportProgressTracker,
    PostgresRecordStore,
    RecordStore,
    SchemaReconciler,
    exit_process_hook,
    reconnect_hook,
)
from kopfolio.backup.utils import discard_path
from .config import settings
from .routers import backup, health

# App-managed logging: attach our own handler and don't propagate, so INFO
# logs show up regardless of uvicorn's logging config
kopfolio_logger = logging.getLogger("kopfolio")
kopfolio_logger.setLevel(logging.INFO)
kopfolio_logger.propagate = False
kopfolio_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
))
kopfolio_logger.addHandler(console_handler)

# Fall back to server-managed logging
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    kopfolio_logger.handlers.clear()
    kopfolio_logger.propagate = True

logger = logging.getLogger(__name__)


async def wait_for_database(store: RecordStore, attempts: int, max_wait: float) -> bool:
    """Block until the database answers a ping or ``attempts`` run out."""
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, max=max_wait),
        retry=retry_if_result(lambda ok: ok is False),
    )
    try:
        async for attempt in retrying:
            with attempt:
                ok = await store.ping()
                if not ok:
                    logger.info("Waiting for database...")
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(ok)
    except RetryError:
        return False
    return True


def build_components(
    app: FastAPI,
    config: KopfolioConfig,
    store: Optional[RecordStore] = None,
    tools: Optional[DatabaseTools] = None,
) -> None:
    """Wire the backup components into ``app.state``."""
    store = store or PostgresRecordStore(config.database)
    tools = tools or DatabaseTools(config.database)

    if settings.restart_mode == "exit":
        on_restored = exit_process_hook(settings.restart_delay)
    else:
        on_restored = reconnect_hook(store)

    app.state.config = config
    app.state.record_store = store
    app.state.tracker = ImportProgressTracker()
    app.state.exporter = ArchiveExporter(
        tools,
        uploads_dir=config.backup.uploads_dir,
        export_dir=config.backup.export_dir,
    )
    app.state.importer = ArchiveImporter(
        app.state.tracker,
        tools,
        store,
        uploads_dir=config.backup.uploads_dir,
        extract_dir=config.backup.extract_dir,
        reconciler=SchemaReconciler(store),
        on_restored=on_restored,
        admin_username=config.backup.admin_username,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage backup component lifecycle."""
    logger.info("Initializing backup components...")

    config = KopfolioConfig.from_env()
    build_components(app, config)

    # Nothing can be running yet, so anything under temp is left over from a crash
    app.state.exporter.remove_stale_workspaces()
    discard_path(config.backup.extract_dir)
    discard_path(config.backup.incoming_dir)

    if await wait_for_database(app.state.record_store, settings.db_wait_attempts, settings.db_wait_max_seconds):
        logger.info("Database is available")
    else:
        logger.error("Database did not become available, starting anyway")

    yield

    logger.info("Shutting down backup components...")
    await app.state.record_store.dispose()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(backup.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
