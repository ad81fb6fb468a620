"""Saved item models.

One :class:`SavedItem` row exists per submitted URL.  Its ``status`` is a
small forward-only state machine:

    PENDING ──> PROCESSING ──> COMPLETED
       │             └───────> FAILED
       └─────────> COMPLETED / FAILED

The bulk importer creates rows in ``PENDING``; the single-URL flow creates
them directly in ``PROCESSING``.  ``COMPLETED`` and ``FAILED`` are terminal.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pagestash.models.extraction import Product


class ItemStatus(str, Enum):  # noqa: UP042
    """Lifecycle state of a saved item."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.FAILED)

    def can_transition_to(self, target: ItemStatus) -> bool:
        """Return ``True`` if moving from this status to *target* is forward."""
        if self.is_terminal:
            return False
        return _STATUS_RANK[target] > _STATUS_RANK[self]


_STATUS_RANK = {
    ItemStatus.PENDING: 0,
    ItemStatus.PROCESSING: 1,
    ItemStatus.COMPLETED: 2,
    ItemStatus.FAILED: 2,
}

# Statuses an item may be created in.
CREATABLE_STATUSES = frozenset({ItemStatus.PENDING, ItemStatus.PROCESSING})


class SavedItem(BaseModel):
    """A URL saved by one user, plus whatever was extracted from it."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    user_id: str
    status: ItemStatus

    title: str | None = None
    content: str | None = None
    og_image: str | None = None

    # Variant payload: author/published_at for "article" deployments,
    # products for "products" deployments.  Never both.
    author: str | None = None
    published_at: datetime | None = None
    products: list[Product] | None = None

    summary: str | None = None
    tags: list[str] = Field(default_factory=list, max_length=5)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @model_validator(mode="after")
    def _single_payload_shape(self) -> SavedItem:
        if self.products is not None and (
            self.author is not None or self.published_at is not None
        ):
            raise ValueError("an item carries either author/published_at or products, not both")
        return self


class ItemUpdate(BaseModel):
    """Partial update applied by :meth:`IItemStore.update`.

    Only fields explicitly set are written (``model_dump(exclude_unset=True)``),
    so ``ItemUpdate(status=ItemStatus.FAILED)`` touches nothing else.
    """

    status: ItemStatus | None = None
    title: str | None = None
    content: str | None = None
    og_image: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    products: list[Product] | None = None
    summary: str | None = None
    tags: list[str] | None = Field(default=None, max_length=5)


class ScrapeOutcome(BaseModel):
    """Discriminated result of a single-URL scrape: an item or an error string."""

    item: SavedItem | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> ScrapeOutcome:
        if (self.item is None) == (self.error is None):
            raise ValueError("ScrapeOutcome holds exactly one of item or error")
        return self
