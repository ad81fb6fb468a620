"""Bulk scrape orchestrator.

Processes a batch of URLs strictly one at a time.  For each URL it creates
a ``PENDING`` item, hands it to :class:`ItemProcessor` for the extraction
attempt and terminal write, and yields one :class:`BulkScrapeProgress`
before moving on.  A failed URL never stops the batch; only an unavailable
item store does (``StoreError``).

The batch is validated when :meth:`BulkScrapeOrchestrator.run` is called,
before the iterator is returned, so a bad request fails without a single
store write.  If the consumer stops iterating (client disconnect), the
remaining URLs are never attempted and rows already written stay as they
are.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Sequence

import structlog

from pagestash.interfaces.item_store import IItemStore
from pagestash.models.item import ItemStatus
from pagestash.models.progress import BatchSummary, BulkScrapeProgress, ProgressStatus
from pagestash.pipeline.item_lifecycle import ItemProcessor
from pagestash.pipeline.progress_tracker import ProgressTracker
from pagestash.utils.errors import AuthenticationError, StoreError
from pagestash.utils.logging import get_logger
from pagestash.utils.urls import validate_urls


class BulkScrapeOrchestrator:
    """Sequential create/attempt/update loop over a URL batch.

    Parameters
    ----------
    item_store:
        Where items are created.  Terminal writes go through *processor*,
        which should share the same store.
    processor:
        Runs the extraction attempt for each created item.
    progress_tracker:
        Optional; when given, every event is mirrored to it so WebSocket
        observers and the batch status endpoint can follow along.
    max_urls:
        Largest batch accepted, or ``None`` for no limit.
    """

    def __init__(
        self,
        item_store: IItemStore,
        processor: ItemProcessor,
        progress_tracker: ProgressTracker | None = None,
        max_urls: int | None = None,
    ) -> None:
        self._store = item_store
        self._processor = processor
        self._tracker = progress_tracker
        self._max_urls = max_urls
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def run(
        self,
        user_id: str,
        urls: Sequence[str],
        batch_id: str | None = None,
    ) -> AsyncIterator[BulkScrapeProgress]:
        """Validate the batch and return its progress iterator.

        Raises
        ------
        AuthenticationError
            If *user_id* is empty.
        BatchValidationError
            If *urls* is empty, too long, or holds a malformed URL.
        """
        if not user_id:
            raise AuthenticationError("A user id is required to import URLs")
        cleaned = validate_urls(urls, max_urls=self._max_urls)
        batch_id = batch_id or uuid.uuid4().hex
        # Registered before the iterator is handed out so observers that
        # connect as soon as they learn the batch id find it.
        if self._tracker is not None:
            self._tracker.start(batch_id, user_id, len(cleaned))
        return self._iterate(user_id, cleaned, batch_id)

    async def _iterate(
        self,
        user_id: str,
        urls: list[str],
        batch_id: str,
    ) -> AsyncIterator[BulkScrapeProgress]:
        total = len(urls)
        summary = BatchSummary()
        log = self._logger.bind(batch_id=batch_id, user_id=user_id)
        log.info("bulk_scrape_started", total=total)

        error: str | None = "interrupted"
        try:
            for index, url in enumerate(urls):
                item = await self._store.create(user_id, url, ItemStatus.PENDING)
                final = await self._processor.process(user_id, item)

                event = BulkScrapeProgress(
                    completed=index + 1,
                    total=total,
                    url=url,
                    status=(
                        ProgressStatus.SUCCESS
                        if final.status is ItemStatus.COMPLETED
                        else ProgressStatus.FAILED
                    ),
                    item_id=final.id,
                )
                summary.record(event)
                if self._tracker is not None:
                    await self._tracker.update(batch_id, event)
                yield event
            error = None
        except StoreError as exc:
            error = str(exc)
            log.error(
                "bulk_scrape_aborted",
                completed=summary.last_completed,
                total=total,
                error=error,
            )
            raise
        finally:
            if error == "interrupted":
                log.warning(
                    "bulk_scrape_interrupted",
                    completed=summary.last_completed,
                    total=total,
                )
            elif error is None:
                log.info(
                    "bulk_scrape_finished",
                    total=total,
                    succeeded=summary.succeeded,
                    failed=summary.failed,
                )
            if self._tracker is not None:
                await self._tracker.finish(batch_id, error=error)
