"""Batch progress tracking with callback-based listener notification.

Keeps the latest snapshot of every bulk import and broadcasts each event
to listeners registered for that batch id.

    BulkScrapeOrchestrator --update()--> ProgressTracker --callback()--> WebSocket handler
                                                        --callback()--> (any other listener)

Listeners are keyed by batch id so concurrent batches never see each
other's events.  A listener that raises is logged and skipped.
Snapshots are kept in memory only; the oldest are evicted once
``max_batches`` is exceeded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from pagestash.models.progress import BulkScrapeProgress, ProgressStatus
from pagestash.utils.logging import get_logger

_DEFAULT_MAX_BATCHES = 256


@dataclass
class _BatchStatus:
    """Internal snapshot of one batch.  Never exposed directly."""

    user_id: str
    total: int
    completed: int = 0
    succeeded: int = 0
    failed: int = 0
    last_url: str | None = None
    finished: bool = False
    error: str | None = None
    item_ids: list[str] = field(default_factory=list)


class ProgressTracker:
    """Tracks and broadcasts bulk import progress via callbacks."""

    def __init__(self, max_batches: int = _DEFAULT_MAX_BATCHES) -> None:
        self._statuses: dict[str, _BatchStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._max_batches = max_batches
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self, batch_id: str, user_id: str, total: int) -> None:
        """Begin tracking a batch of *total* URLs owned by *user_id*."""
        self._statuses[batch_id] = _BatchStatus(user_id=user_id, total=total)
        self._evict()
        self._logger.debug("batch_tracking_started", batch_id=batch_id, total=total)

    async def update(self, batch_id: str, event: BulkScrapeProgress) -> None:
        """Record one progress event and notify the batch's listeners."""
        status = self._statuses.get(batch_id)
        if status is not None:
            status.completed = event.completed
            status.last_url = event.url
            if event.status is ProgressStatus.SUCCESS:
                status.succeeded += 1
            else:
                status.failed += 1
            if event.item_id:
                status.item_ids.append(event.item_id)

        await self._notify_listeners(
            batch_id, {"type": "progress", **event.model_dump(mode="json")}
        )

    async def finish(self, batch_id: str, error: str | None = None) -> None:
        """Mark a batch as done (``error`` set when it stopped early)."""
        status = self._statuses.get(batch_id)
        if status is None:
            return
        status.finished = True
        status.error = error
        self._logger.debug("batch_tracking_finished", batch_id=batch_id, error=error)
        await self._notify_listeners(
            batch_id,
            {
                "type": "finished",
                "completed": status.completed,
                "total": status.total,
                "succeeded": status.succeeded,
                "failed": status.failed,
                "error": error,
            },
        )

    def register_listener(self, batch_id: str, callback: Callable) -> None:
        """Register an async or sync ``callback(batch_id, message)`` for a batch."""
        listeners = self._listeners.setdefault(batch_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                batch_id=batch_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, batch_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(batch_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                batch_id=batch_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(batch_id, None)

    def get_status(self, batch_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        """Return a batch snapshot, or ``None`` if unknown.

        When *user_id* is given, batches owned by someone else are reported
        as unknown.
        """
        status = self._statuses.get(batch_id)
        if status is None or (user_id is not None and status.user_id != user_id):
            return None
        return {
            "batch_id": batch_id,
            "total": status.total,
            "completed": status.completed,
            "succeeded": status.succeeded,
            "failed": status.failed,
            "last_url": status.last_url,
            "finished": status.finished,
            "error": status.error,
            "item_ids": list(status.item_ids),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evict(self) -> None:
        while len(self._statuses) > self._max_batches:
            oldest = next(iter(self._statuses))
            del self._statuses[oldest]

    async def _notify_listeners(self, batch_id: str, message: dict[str, Any]) -> None:
        for callback in list(self._listeners.get(batch_id, [])):
            try:
                result = callback(batch_id, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    batch_id=batch_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
