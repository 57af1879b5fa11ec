"""
FastAPI application initialization and configuration.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dispatcher import TaskManager

from .middleware import log_requests_middleware
from .endpoints import health_router, messages_router

logger = logging.getLogger(__name__)


def create_app(task_manager: TaskManager) -> FastAPI:
    """Create the relay application around a task manager

    The task manager is shut down with the application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await task_manager.shutdown()

    app = FastAPI(title="ChatGPT Relay", version="1.0.0", lifespan=lifespan)
    app.state.task_manager = task_manager

    # Add middleware
    app.middleware("http")(log_requests_middleware)

    # Register routers
    app.include_router(health_router)
    app.include_router(messages_router)

    logger.debug("FastAPI application initialized with all routers and middleware")
    return app
