"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from tandoor_gateway.api.routes import router as tools_router
from tandoor_gateway.app_logging import configure_logging
from tandoor_gateway.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Gateway ready for %s", app.state.container.settings.tandoor_base_url
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(title="Tandoor Gateway", lifespan=lifespan)
    app.state.container = container

    app.include_router(tools_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, object]:
        """Health check with a redacted view of the backend credential."""
        state_container: AppContainer = request.app.state.container
        return {
            "status": "ok",
            "backend": state_container.settings.tandoor_base_url,
            "auth": state_container.tokens.describe(),
        }

    return app
