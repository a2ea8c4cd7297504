from contextlib import asynccontextmanager

import anyio
import anyio.to_thread
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from edunotify.application.services import default_inline_queue
from edunotify.config import configure_logging, get_settings
from edunotify.infrastructure.database import engine, initialize_database
from edunotify.interfaces.api.routes import register_routes

DEFERRED_DELIVERY_INTERVAL_SECONDS = 30


async def _run_deferred_deliveries() -> None:
    """Periodically deliver inline jobs whose delay has elapsed."""

    while True:
        await anyio.sleep(DEFERRED_DELIVERY_INTERVAL_SECONDS)
        await anyio.to_thread.run_sync(default_inline_queue.run_due)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup and release resources on shutdown."""

    settings = get_settings()
    configure_logging(settings)
    initialize_database()
    async with anyio.create_task_group() as task_group:
        if settings.notification_queue == "inline":
            task_group.start_soon(_run_deferred_deliveries)
        yield
        task_group.cancel_scope.cancel()
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="EduNotify", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
