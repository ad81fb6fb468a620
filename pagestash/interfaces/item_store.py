"""Abstract base class for saved-item persistence providers.

The concrete implementation is SQLiteItemStore
(``pagestash/providers/store/sqlite_item_store.py``).  Every read and write
is scoped by the owning user id; a row that belongs to someone else is
indistinguishable from a row that does not exist.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pagestash.models.item import ItemStatus, ItemUpdate, SavedItem


# Concrete implementation: SQLiteItemStore (pagestash/providers/store/)
class IItemStore(ABC):
    """Contract for saved-item persistence services."""

    # -- Lifecycle --------------------------------------------------------

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    # -- CRUD -------------------------------------------------------------

    @abstractmethod
    async def create(self, owner_id: str, url: str, status: ItemStatus) -> SavedItem:
        """Insert a new item for *owner_id* and return it.

        Parameters
        ----------
        owner_id:
            The user the item belongs to.
        url:
            Source URL.  Immutable once stored.
        status:
            Initial status; must be ``PENDING`` or ``PROCESSING``.

        Raises
        ------
        pagestash.utils.errors.InvalidStatusTransitionError
            If *status* is terminal.
        pagestash.utils.errors.StoreError
            If the write fails.
        """

    @abstractmethod
    async def update(self, item_id: str, owner_id: str, fields: ItemUpdate) -> SavedItem:
        """Apply the explicitly-set *fields* to the item and return the new row.

        Raises
        ------
        pagestash.utils.errors.ItemNotFoundError
            If the item does not exist or is owned by another user.
        pagestash.utils.errors.InvalidStatusTransitionError
            If ``fields.status`` would move the item backwards or out of a
            terminal status.
        pagestash.utils.errors.StoreError
            If the write fails.
        """

    @abstractmethod
    async def find_many(
        self,
        owner_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SavedItem]:
        """Return the owner's items, newest ``created_at`` first."""

    @abstractmethod
    async def find_unique(self, item_id: str, owner_id: str) -> SavedItem:
        """Return one item.

        Raises
        ------
        pagestash.utils.errors.ItemNotFoundError
            If the item does not exist or is owned by another user.
        """
