"""pageStash FastAPI application entry point.

Wires providers, services, and routes together.  Configuration comes from
``.env`` (Settings) and ``config/config.yaml`` (load_config); logging is
configured once at import.

``build_pipeline`` exposes the same wiring to the CLI so a bulk import can
run locally without the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

import pagestash
from pagestash.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from pagestash.api.routes import router as api_router
from pagestash.api.websocket import websocket_batch_progress
from pagestash.config.loader import load_config
from pagestash.config.settings import Settings
from pagestash.pipeline.bulk_scraper import BulkScrapeOrchestrator
from pagestash.pipeline.item_lifecycle import ItemProcessor
from pagestash.pipeline.progress_tracker import ProgressTracker
from pagestash.providers.extraction.firecrawl_provider import FirecrawlExtractionProvider
from pagestash.providers.llm.openai_provider import OpenAILLMProvider
from pagestash.providers.store.sqlite_item_store import SQLiteItemStore
from pagestash.providers.store.sqlite_product_store import SQLiteProductStore
from pagestash.services.discovery_service import DiscoveryService
from pagestash.services.import_service import ImportService
from pagestash.services.item_service import ItemService
from pagestash.services.summary_service import SummaryService
from pagestash.utils.logging import configure_logging, get_logger

settings = Settings()
configure_logging(log_level=settings.log_level)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    config = config if config is not None else load_config()

    extraction_provider = FirecrawlExtractionProvider(app_settings)
    item_store = SQLiteItemStore(app_settings.items_db_path)
    product_store = SQLiteProductStore(app_settings.items_db_path)
    llm_provider = OpenAILLMProvider(app_settings)
    progress_tracker = ProgressTracker()

    processor = ItemProcessor(
        extraction_provider=extraction_provider,
        item_store=item_store,
        variant=app_settings.extraction_variant,
    )
    orchestrator = BulkScrapeOrchestrator(
        item_store=item_store,
        processor=processor,
        progress_tracker=progress_tracker,
        max_urls=app_settings.bulk_max_urls,
    )

    if not extraction_provider.is_available():
        _logger.warning("firecrawl_not_configured", hint="set FIRECRAWL_API_KEY")
    if not llm_provider.is_available():
        _logger.warning("llm_not_configured", hint="set OPENAI_API_KEY")

    return {
        "settings": app_settings,
        "config": config,
        "extraction_provider": extraction_provider,
        "item_store": item_store,
        "product_store": product_store,
        "llm_provider": llm_provider,
        "progress_tracker": progress_tracker,
        "orchestrator": orchestrator,
        "item_service": ItemService(item_store=item_store, processor=processor),
        "summary_service": SummaryService(
            llm=llm_provider,
            item_store=item_store,
            config=config.get("summary"),
        ),
        "discovery_service": DiscoveryService(
            extraction_provider=extraction_provider,
            config=config.get("discovery"),
        ),
        "import_service": ImportService(product_store=product_store),
    }


async def build_pipeline(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Build and initialise the components for use outside the web server."""
    components = _build_all(custom_settings or settings)
    await components["item_store"].initialize()
    return components


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to wire from; the module-level settings by default.
    components:
        Pre-built components to place on ``app.state`` instead of calling
        ``_build_all``.  Tests use this to inject fakes.
    """
    resolved_settings = app_settings or settings

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        built = components if components is not None else _build_all(resolved_settings)
        built.setdefault("settings", resolved_settings)
        for key, value in built.items():
            setattr(application.state, key, value)

        await built["item_store"].initialize()
        if built.get("product_store") is not None:
            await built["product_store"].initialize()
        _logger.info(
            "app_startup",
            version=pagestash.__version__,
            environment=resolved_settings.app_env,
            variant=resolved_settings.extraction_variant.value,
            providers=resolved_settings.get_available_providers(),
        )

        yield

        extraction_provider = built.get("extraction_provider")
        if isinstance(extraction_provider, FirecrawlExtractionProvider):
            await extraction_provider.close()
        _logger.info("app_shutdown")

    application = FastAPI(
        title="pageStash API",
        version=pagestash.__version__,
        description=(
            "Save web pages, extract their content and structured data, "
            "and summarize and tag them with an LLM."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)

    @application.websocket("/ws/batches/{batch_id}")
    async def ws_batch_progress(websocket: WebSocket, batch_id: str) -> None:
        await websocket_batch_progress(websocket, batch_id)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "pagestash.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.is_development,
    )
