"""FastAPI server for the Fakturownia tool adapter.

Main entry point for the API server.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from api.routes import health, tools
from connectors.fakturownia import FakturowniaConnector
from core import __version__
from core.observability.logging import configure_logging, get_logger
from core.settings import AppSettings, load_settings

logger = get_logger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    connector: Optional[FakturowniaConnector] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings used to build the connector when none is given
        connector: Pre-built connector (opened and closed with the app)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open the connector session on startup, close it on shutdown."""
        active = connector
        if active is None:
            active = FakturowniaConnector.from_settings(settings or load_settings())

        await active.connect()
        app.state.connector = active
        logger.info(f"Fakturownia tool API starting up ({active.client.base_url})")

        try:
            yield
        finally:
            await active.disconnect()
            app.state.connector = None
            logger.info("Fakturownia tool API shutting down")

    app = FastAPI(
        title="Fakturownia Tool API",
        description="Named Fakturownia operations exposed as agent tools",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.connector = None

    app.include_router(health.router, tags=["Health"])
    app.include_router(tools.router, prefix="/tools", tags=["Tools"])

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level_value, json_format=settings.log_json, force=True)
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
