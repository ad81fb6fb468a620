"""Per-item attempt shared by the bulk importer and the single-URL flow.

Given an item that has already been created (``PENDING`` or
``PROCESSING``), :class:`ItemProcessor` makes exactly one extraction call
and exactly one terminal write:

* extraction succeeds and the ``COMPLETED`` write succeeds -> ``COMPLETED``
* extraction raises, or the ``COMPLETED`` write raises     -> ``FAILED``
* the ``FAILED`` write itself raises                        -> ``StoreError``

The failure reason is logged and never stored on the item.
"""

from __future__ import annotations

import asyncio

import structlog

from pagestash.interfaces.extraction_provider import (
    ExtractionRequest,
    ExtractionResult,
    IExtractionProvider,
)
from pagestash.interfaces.item_store import IItemStore
from pagestash.models.extraction import (
    ExtractionVariant,
    ProductsPayload,
    extraction_schema,
    parse_payload,
)
from pagestash.models.item import ItemStatus, ItemUpdate, SavedItem
from pagestash.utils.dates import parse_published_at
from pagestash.utils.errors import StoreError
from pagestash.utils.logging import get_logger


def build_extraction_request(url: str, variant: ExtractionVariant) -> ExtractionRequest:
    """Return the fixed request shape: markdown + structured JSON, main content only."""
    return ExtractionRequest(
        url=url,
        json_schema=extraction_schema(variant),
        formats=("markdown",),
        only_main_content=True,
    )


def reduce_extraction(result: ExtractionResult, variant: ExtractionVariant) -> ItemUpdate:
    """Turn a scrape result into the ``COMPLETED`` update for an item.

    Empty strings become ``None`` and a publish date that cannot be parsed
    becomes ``None``.  A missing structured payload, or one that does not
    fit *variant*, raises ``TypeError`` or :class:`pydantic.ValidationError`
    so the caller records the item as ``FAILED``.
    """
    payload = parse_payload(variant, result.json)
    fields: dict = {
        "status": ItemStatus.COMPLETED,
        "title": result.metadata.title or None,
        "content": result.markdown or None,
        "og_image": result.metadata.og_image or None,
    }

    if isinstance(payload, ProductsPayload):
        fields["products"] = list(payload.products)
    else:
        fields["author"] = payload.author or None
        fields["published_at"] = parse_published_at(payload.published_at)

    return ItemUpdate(**fields)


class ItemProcessor:
    """Runs the extraction attempt and terminal write for one created item."""

    def __init__(
        self,
        extraction_provider: IExtractionProvider,
        item_store: IItemStore,
        variant: ExtractionVariant = ExtractionVariant.ARTICLE,
    ) -> None:
        self._extractor = extraction_provider
        self._store = item_store
        self._variant = variant
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def variant(self) -> ExtractionVariant:
        return self._variant

    async def process(self, user_id: str, item: SavedItem) -> SavedItem:
        """Attempt extraction for *item* and persist its terminal status.

        Returns the persisted terminal item.  Only a failure to write
        ``FAILED`` escapes, as :class:`StoreError`.
        """
        try:
            result = await self._extractor.scrape(
                build_extraction_request(item.url, self._variant)
            )
            completed = await self._store.update(
                item.id, user_id, reduce_extraction(result, self._variant)
            )
        except asyncio.CancelledError:
            await self._abandon(user_id, item)
            raise
        except Exception as exc:
            self._logger.warning(
                "item_scrape_failed",
                item_id=item.id,
                url=item.url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return await self._mark_failed(user_id, item)

        self._logger.info(
            "item_scrape_completed",
            item_id=item.id,
            url=item.url,
            has_title=completed.title is not None,
            has_content=completed.content is not None,
        )
        return completed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _mark_failed(self, user_id: str, item: SavedItem) -> SavedItem:
        try:
            return await self._store.update(
                item.id, user_id, ItemUpdate(status=ItemStatus.FAILED)
            )
        except StoreError:
            self._logger.error("item_mark_failed_error", item_id=item.id, url=item.url)
            raise
        except Exception as exc:
            self._logger.error(
                "item_mark_failed_error", item_id=item.id, url=item.url, error=str(exc)
            )
            raise StoreError(
                message=f"Could not mark item {item.id} as FAILED: {exc}",
            ) from exc

    async def _abandon(self, user_id: str, item: SavedItem) -> None:
        """Best-effort ``FAILED`` mark for an item whose attempt was cancelled."""
        try:
            await self._store.update(item.id, user_id, ItemUpdate(status=ItemStatus.FAILED))
        except Exception as exc:
            self._logger.warning(
                "item_abandon_failed", item_id=item.id, url=item.url, error=str(exc)
            )
        else:
            self._logger.info("item_abandoned", item_id=item.id, url=item.url)
