"""Store adapters (IItemStore, IProductStore)."""

from pagestash.providers.store.sqlite_item_store import SQLiteItemStore
from pagestash.providers.store.sqlite_product_store import SQLiteProductStore

__all__ = ["SQLiteItemStore", "SQLiteProductStore"]
