"""FastAPI routes for pageStash.

Every route except ``/health`` requires an authenticated user (see
:mod:`pagestash.api.auth`); services are resolved from ``app.state``.

    Endpoint                              Method  Description
    ---------------------------------------------------------------------
    /api/v1/items/bulk                    POST    Import a URL batch (NDJSON progress stream)
    /api/v1/items/scrape                  POST    Scrape and save one URL
    /api/v1/items                         GET     List the user's items, newest first
    /api/v1/items/{item_id}               GET     Read one item
    /api/v1/items/{item_id}/summary       POST    Generate summary + tags and save
    /api/v1/items/{item_id}/summary       PUT     Save a given summary, generate tags
    /api/v1/items/{item_id}/summary/stream POST   Stream a summary as plain text
    /api/v1/imports/json                  POST    Import products from pasted catalogue JSON
    /api/v1/imports/json                  GET     List imported products
    /api/v1/imports/json                  DELETE  Delete all imported products
    /api/v1/discover/map                  POST    List links on a site
    /api/v1/discover/search               POST    Web search
    /api/v1/batches/{batch_id}            GET     Bulk import snapshot
    /api/v1/health                        GET     Health check + provider status
"""

from __future__ import annotations

import contextlib
import json
import uuid
from collections.abc import AsyncIterator
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

import pagestash
from pagestash.api.auth import CurrentUser
from pagestash.api.schemas import (
    BatchStatusResponse,
    BulkScrapeRequest,
    DeleteProductsResponse,
    ErrorResponse,
    HealthResponse,
    ImportJsonRequest,
    ImportJsonResponse,
    LinkSchema,
    LinksResponse,
    MapSiteRequest,
    ProductSchema,
    ProductsResponse,
    ScrapeRequest,
    SearchWebRequest,
    SummaryUpdateRequest,
)
from pagestash.interfaces.extraction_provider import SiteLink
from pagestash.models.item import SavedItem, ScrapeOutcome
from pagestash.models.progress import BulkScrapeProgress
from pagestash.pipeline.bulk_scraper import BulkScrapeOrchestrator
from pagestash.pipeline.progress_tracker import ProgressTracker
from pagestash.services.discovery_service import DiscoveryService
from pagestash.services.import_service import ImportService
from pagestash.services.item_service import ItemService
from pagestash.services.summary_service import SummaryService
from pagestash.utils.errors import PageStashError
from pagestash.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

NDJSON_MEDIA_TYPE = "application/x-ndjson"


# ---------------------------------------------------------------------------
# Dependencies (populated on app.state by main._build_all)
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> BulkScrapeOrchestrator:
    return request.app.state.orchestrator


def _get_item_service(request: Request) -> ItemService:
    return request.app.state.item_service


def _get_summary_service(request: Request) -> SummaryService:
    return request.app.state.summary_service


def _get_discovery_service(request: Request) -> DiscoveryService:
    return request.app.state.discovery_service


def _get_progress_tracker(request: Request) -> ProgressTracker:
    return request.app.state.progress_tracker


def _get_import_service(request: Request) -> ImportService:
    return request.app.state.import_service


OrchestratorDep = Annotated[BulkScrapeOrchestrator, Depends(_get_orchestrator)]
ItemServiceDep = Annotated[ItemService, Depends(_get_item_service)]
SummaryServiceDep = Annotated[SummaryService, Depends(_get_summary_service)]
DiscoveryServiceDep = Annotated[DiscoveryService, Depends(_get_discovery_service)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]
ImportServiceDep = Annotated[ImportService, Depends(_get_import_service)]


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


async def _ndjson_stream(
    events: AsyncIterator[BulkScrapeProgress], batch_id: str
) -> AsyncIterator[str]:
    """Serialize progress events one JSON object per line.

    Once the response has started the status code can no longer change, so
    a batch-aborting error is sent as a final ``ErrorResponse`` line.
    """
    async with contextlib.aclosing(events) as stream:
        try:
            async for event in stream:
                yield event.model_dump_json() + "\n"
        except PageStashError as exc:
            _logger.error(
                "bulk_stream_aborted",
                batch_id=batch_id,
                error_type=type(exc).__name__,
                message=exc.message,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            yield json.dumps(body.model_dump()) + "\n"


@router.post(
    "/items/bulk",
    response_class=StreamingResponse,
    responses={
        200: {"content": {NDJSON_MEDIA_TYPE: {}}, "description": "One progress event per line"},
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Import a batch of URLs, streaming progress",
)
async def bulk_scrape(
    body: BulkScrapeRequest,
    user_id: CurrentUser,
    orchestrator: OrchestratorDep,
) -> StreamingResponse:
    """Create one item per URL and stream a progress event as each finishes.

    The batch is validated before the response starts; a bad batch is
    rejected with 422 and nothing is written.
    """
    batch_id = uuid.uuid4().hex
    events = orchestrator.run(user_id, body.urls, batch_id=batch_id)
    return StreamingResponse(
        _ndjson_stream(events, batch_id),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"X-Batch-Id": batch_id, "Cache-Control": "no-cache"},
    )


@router.post(
    "/items/scrape",
    response_model=None,
    responses={
        200: {"model": SavedItem},
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Scrape and save a single URL",
)
async def scrape_item(
    body: ScrapeRequest,
    user_id: CurrentUser,
    item_service: ItemServiceDep,
    as_outcome: bool = Query(False, description="Return {item} | {error} instead of the item"),
) -> SavedItem | ScrapeOutcome:
    """Return the saved item (``COMPLETED`` or ``FAILED``)."""
    if as_outcome:
        return await item_service.scrape_outcome(user_id, body.url)
    return await item_service.scrape_url(user_id, body.url)


@router.get(
    "/items",
    response_model=list[SavedItem],
    summary="List the current user's items",
)
async def list_items(
    user_id: CurrentUser,
    item_service: ItemServiceDep,
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[SavedItem]:
    """Return items newest first."""
    return await item_service.list_items(user_id, limit=limit, offset=offset)


@router.get(
    "/items/{item_id}",
    response_model=SavedItem,
    responses={404: {"model": ErrorResponse}},
    summary="Read one item",
)
async def get_item(
    item_id: str,
    user_id: CurrentUser,
    item_service: ItemServiceDep,
) -> SavedItem:
    return await item_service.get_item(user_id, item_id)


@router.post(
    "/items/{item_id}/summary",
    response_model=SavedItem,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Generate a summary and tags for an item",
)
async def generate_summary(
    item_id: str,
    user_id: CurrentUser,
    summary_service: SummaryServiceDep,
) -> SavedItem:
    return await summary_service.generate_and_save(user_id, item_id)


@router.put(
    "/items/{item_id}/summary",
    response_model=SavedItem,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Save a summary and generate tags from it",
)
async def save_summary(
    item_id: str,
    body: SummaryUpdateRequest,
    user_id: CurrentUser,
    summary_service: SummaryServiceDep,
) -> SavedItem:
    return await summary_service.save_summary_and_generate_tags(user_id, item_id, body.summary)


async def _text_stream(first: str, deltas: AsyncIterator[str], item_id: str) -> AsyncIterator[str]:
    """Yield the already-fetched first delta, then the rest.

    An LLM failure after the first delta can only end the body early; it is
    logged and the client sees truncated text.
    """
    yield first
    async with contextlib.aclosing(deltas) as stream:
        try:
            async for delta in stream:
                yield delta
        except PageStashError as exc:
            _logger.error(
                "summary_stream_aborted",
                item_id=item_id,
                error_type=type(exc).__name__,
                message=exc.message,
            )


@router.post(
    "/items/{item_id}/summary/stream",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/plain": {}}, "description": "Summary text as it is generated"},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Stream a summary of an item without saving it",
)
async def stream_summary(
    item_id: str,
    user_id: CurrentUser,
    summary_service: SummaryServiceDep,
) -> StreamingResponse:
    """Stream the generated summary as plain text.

    The first delta is awaited before the response starts, so lookup
    errors and an LLM that fails outright still get a proper error status.  Save the result with ``PUT .../summary``.
    """
    deltas = await summary_service.stream_summary(user_id, item_id)
    try:
        first = await anext(deltas)
    except StopAsyncIteration:
        first = ""
    return StreamingResponse(
        _text_stream(first, deltas, item_id),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache"},
    )


# ---------------------------------------------------------------------------
# Catalogue JSON imports
# ---------------------------------------------------------------------------


@router.post(
    "/imports/json",
    response_model=ImportJsonResponse,
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Import products from a pasted catalogue JSON document",
)
async def import_json(
    body: ImportJsonRequest,
    user_id: CurrentUser,
    import_service: ImportServiceDep,
) -> ImportJsonResponse:
    products = await import_service.import_json(user_id, body.url, body.document)
    return ImportJsonResponse(imported=len(products))


@router.get(
    "/imports/json",
    response_model=ProductsResponse,
    summary="List the current user's imported products",
)
async def list_imported_products(
    user_id: CurrentUser,
    import_service: ImportServiceDep,
) -> ProductsResponse:
    products = await import_service.list_products(user_id)
    return ProductsResponse(products=[ProductSchema.from_product(p) for p in products])


@router.delete(
    "/imports/json",
    response_model=DeleteProductsResponse,
    summary="Delete all of the current user's imported products",
)
async def delete_imported_products(
    user_id: CurrentUser,
    import_service: ImportServiceDep,
) -> DeleteProductsResponse:
    return DeleteProductsResponse(deleted=await import_service.delete_all(user_id))


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _links(links: list[SiteLink]) -> LinksResponse:
    return LinksResponse(
        links=[
            LinkSchema(url=link.url, title=link.title, description=link.description)
            for link in links
        ]
    )


@router.post(
    "/discover/map",
    response_model=LinksResponse,
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="List links found on a site",
)
async def map_site(
    body: MapSiteRequest,
    user_id: CurrentUser,
    discovery: DiscoveryServiceDep,
) -> LinksResponse:
    return _links(await discovery.map_site(body.url, search=body.search, limit=body.limit))


@router.post(
    "/discover/search",
    response_model=LinksResponse,
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Search the web",
)
async def search_web(
    body: SearchWebRequest,
    user_id: CurrentUser,
    discovery: DiscoveryServiceDep,
) -> LinksResponse:
    return _links(
        await discovery.search_web(
            body.query, limit=body.limit, location=body.location, tbs=body.tbs
        )
    )


# ---------------------------------------------------------------------------
# Batches & health
# ---------------------------------------------------------------------------


@router.get(
    "/batches/{batch_id}",
    response_model=BatchStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a bulk import snapshot",
)
async def get_batch_status(
    batch_id: str,
    user_id: CurrentUser,
    tracker: TrackerDep,
) -> BatchStatusResponse:
    """Return the latest counts for a batch this process has run."""
    status = tracker.get_status(batch_id, user_id=user_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found")
    return BatchStatusResponse(**status)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request) -> HealthResponse:
    """Report liveness plus which external providers are configured."""
    providers = request.app.state.settings.get_available_providers()
    return HealthResponse(status="ok", version=pagestash.__version__, providers=providers)
