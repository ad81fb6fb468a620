"""SQLite-backed store for products imported from catalogue JSON.

Layer: Providers (concrete adapter implementing IProductStore).
Database: the same file as the item store, in its own ``products`` table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from pagestash.interfaces.product_store import IProductStore
from pagestash.models.product_import import ImportedProduct, NewProduct
from pagestash.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/items.db")

_CREATE_PRODUCTS_TABLE = """\
CREATE TABLE IF NOT EXISTS products (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    product_id  TEXT NOT NULL,
    name        TEXT NOT NULL,
    price       REAL NOT NULL,
    image_url   TEXT,
    link        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_CREATE_INDEX = "CREATE INDEX IF NOT EXISTS idx_products_user ON products(user_id);"

_INSERT_PRODUCT = """\
INSERT INTO products (id, user_id, product_id, name, price, image_url, link, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_PRODUCTS = """\
SELECT * FROM products WHERE user_id = ? ORDER BY rowid ASC;
"""

_DELETE_PRODUCTS = "DELETE FROM products WHERE user_id = ?;"


class SQLiteProductStore(IProductStore):
    """Owner-scoped product persistence in a local SQLite file."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_PRODUCTS_TABLE)
                await db.execute(_CREATE_INDEX)
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._store_error("initialize", exc) from exc
        logger.info("product_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_products"

    async def add_many(self, owner_id: str, products: list[NewProduct]) -> list[ImportedProduct]:
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        stored = [
            ImportedProduct(
                **product.model_dump(),
                id=uuid.uuid4().hex,
                user_id=owner_id,
                created_at=now,
            )
            for product in products
        ]
        if not stored:
            return []

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.executemany(_INSERT_PRODUCT, [
                    (
                        p.id,
                        owner_id,
                        p.product_id,
                        p.name,
                        p.price,
                        p.image_url,
                        p.link,
                        now.isoformat(timespec="microseconds"),
                    )
                    for p in stored
                ])
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._store_error("add_many", exc) from exc

        logger.debug("products_added", owner_id=owner_id, count=len(stored))
        return stored

    async def find_many(self, owner_id: str) -> list[ImportedProduct]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_PRODUCTS, (owner_id,))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise self._store_error("find_many", exc) from exc
        return [self._row_to_product(dict(r)) for r in rows]

    async def delete_all(self, owner_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_DELETE_PRODUCTS, (owner_id,))
                await db.commit()
                deleted = cursor.rowcount
        except aiosqlite.Error as exc:
            raise self._store_error("delete_all", exc) from exc
        logger.debug("products_deleted", owner_id=owner_id, count=deleted)
        return deleted

    # -- Internal helpers -------------------------------------------------

    def _store_error(self, operation: str, exc: Exception) -> StoreError:
        logger.error("product_store_error", operation=operation, error=str(exc))
        return StoreError(
            message=f"Product store {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )

    @staticmethod
    def _row_to_product(row: dict[str, Any]) -> ImportedProduct:
        return ImportedProduct(
            id=row["id"],
            user_id=row["user_id"],
            product_id=row["product_id"],
            name=row["name"],
            price=row["price"],
            image_url=row.get("image_url"),
            link=row["link"],
            created_at=row["created_at"],
        )
