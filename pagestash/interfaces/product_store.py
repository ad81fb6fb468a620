"""Abstract base class for imported-product persistence.

The concrete implementation is SQLiteProductStore
(``pagestash/providers/store/sqlite_product_store.py``).  As with items,
every operation is scoped by the owning user id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pagestash.models.product_import import ImportedProduct, NewProduct


# Concrete implementation: SQLiteProductStore (pagestash/providers/store/)
class IProductStore(ABC):
    """Contract for imported-product persistence services."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def add_many(self, owner_id: str, products: list[NewProduct]) -> list[ImportedProduct]:
        """Insert all *products* for *owner_id* in one transaction.

        Either every row is written or none is.

        Raises
        ------
        pagestash.utils.errors.StoreError
            If the write fails.
        """

    @abstractmethod
    async def find_many(self, owner_id: str) -> list[ImportedProduct]:
        """Return the owner's products in the order they were imported."""

    @abstractmethod
    async def delete_all(self, owner_id: str) -> int:
        """Delete every product owned by *owner_id*; return how many went."""
