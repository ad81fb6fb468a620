"""Single-URL scrape flow and owner-scoped item reads.

Layer: Services.
Depends on: IItemStore, ItemProcessor (which wraps IExtractionProvider).

``scrape_url`` creates the item directly in ``PROCESSING`` and then runs
the same attempt/terminal-write step the bulk importer uses, so both
entry points reduce extraction results and absorb failures identically.
"""

from __future__ import annotations

import structlog

from pagestash.interfaces.item_store import IItemStore
from pagestash.models.item import ItemStatus, SavedItem, ScrapeOutcome
from pagestash.pipeline.item_lifecycle import ItemProcessor
from pagestash.utils.errors import AuthenticationError, StoreError
from pagestash.utils.urls import validate_urls

logger = structlog.get_logger(logger_name=__name__)

SCRAPE_FAILED_MESSAGE = "Failed to scrape url"


class ItemService:
    """Scrapes single URLs and serves a user's saved items."""

    def __init__(self, item_store: IItemStore, processor: ItemProcessor) -> None:
        self._store = item_store
        self._processor = processor

    async def scrape_url(self, user_id: str, url: str) -> SavedItem:
        """Scrape one URL into a new item and return the persisted result.

        The returned item is ``COMPLETED`` or ``FAILED``; extraction errors
        are never raised.

        Raises
        ------
        AuthenticationError
            If *user_id* is empty.
        BatchValidationError
            If *url* is not an absolute http(s) URL.
        StoreError
            If the item cannot be created or its failure cannot be recorded.
        """
        if not user_id:
            raise AuthenticationError("A user id is required to save a URL")
        (clean_url,) = validate_urls([url])

        item = await self._store.create(user_id, clean_url, ItemStatus.PROCESSING)
        final = await self._processor.process(user_id, item)
        logger.info("single_scrape_finished", item_id=final.id, status=final.status.value)
        return final

    async def scrape_outcome(self, user_id: str, url: str) -> ScrapeOutcome:
        """Like :meth:`scrape_url` but reports failure as ``{error}`` instead.

        A ``FAILED`` item and an unavailable store both become
        ``ScrapeOutcome(error="Failed to scrape url")``.  Validation and
        authentication errors still raise.
        """
        try:
            item = await self.scrape_url(user_id, url)
        except StoreError as exc:
            logger.error("single_scrape_store_error", url=url, error=str(exc))
            return ScrapeOutcome(error=SCRAPE_FAILED_MESSAGE)

        if item.status is ItemStatus.FAILED:
            return ScrapeOutcome(error=SCRAPE_FAILED_MESSAGE)
        return ScrapeOutcome(item=item)

    async def list_items(
        self,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SavedItem]:
        """Return the user's items, newest first."""
        if not user_id:
            raise AuthenticationError()
        return await self._store.find_many(user_id, limit=limit, offset=offset)

    async def get_item(self, user_id: str, item_id: str) -> SavedItem:
        """Return one of the user's items or raise ``ItemNotFoundError``."""
        if not user_id:
            raise AuthenticationError()
        return await self._store.find_unique(item_id, user_id)
