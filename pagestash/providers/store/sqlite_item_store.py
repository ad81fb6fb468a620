"""SQLite-backed saved-item store.

Layer: Providers (concrete adapter implementing IItemStore).
Database: ``data/items.db`` with a single ``items`` table.

Every statement filters on ``user_id`` as well as ``id``, so a request for
another user's row finds nothing and surfaces as ItemNotFoundError.  List
columns (``tags``, ``products``) are stored as JSON text; timestamps as
ISO-8601 UTC strings.

Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` so the
list endpoint can read while a batch is writing.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from pagestash.interfaces.item_store import IItemStore
from pagestash.models.item import CREATABLE_STATUSES, ItemStatus, ItemUpdate, SavedItem
from pagestash.utils.errors import (
    InvalidStatusTransitionError,
    ItemNotFoundError,
    StoreError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/items.db")

# -- Schema DDL -----------------------------------------------------------

_CREATE_ITEMS_TABLE = """\
CREATE TABLE IF NOT EXISTS items (
    id            TEXT PRIMARY KEY,
    user_id       TEXT NOT NULL,
    url           TEXT NOT NULL,
    status        TEXT NOT NULL,
    title         TEXT,
    content       TEXT,
    og_image      TEXT,
    author        TEXT,
    published_at  TEXT,
    products      TEXT,
    summary       TEXT,
    tags          TEXT NOT NULL DEFAULT '[]',
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_items_user_created ON items(user_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_items_status ON items(status);",
]

# -- DML ------------------------------------------------------------------

_INSERT_ITEM = """\
INSERT INTO items (id, user_id, url, status, tags, created_at, updated_at)
VALUES (?, ?, ?, ?, '[]', ?, ?);
"""

_SELECT_ITEM = """\
SELECT * FROM items WHERE id = ? AND user_id = ?;
"""

# rowid breaks ties between rows created within the same microsecond.
_SELECT_ITEMS = """\
SELECT * FROM items WHERE user_id = ?
ORDER BY created_at DESC, rowid DESC
LIMIT ? OFFSET ?;
"""

# Columns an ItemUpdate may write.  id, url, user_id and created_at are
# never updatable.
_UPDATABLE_COLUMNS = (
    "status",
    "title",
    "content",
    "og_image",
    "author",
    "published_at",
    "products",
    "summary",
    "tags",
)


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class SQLiteItemStore(IItemStore):
    """Owner-scoped item persistence in a local SQLite file."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the items table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_ITEMS_TABLE)
                for idx_sql in _CREATE_INDICES:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._store_error("initialize", exc) from exc
        logger.info("item_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_items"

    # -- CRUD -------------------------------------------------------------

    async def create(self, owner_id: str, url: str, status: ItemStatus) -> SavedItem:
        if status not in CREATABLE_STATUSES:
            raise InvalidStatusTransitionError(
                message=f"Items cannot be created in status {status.value}",
                provider_name=self.get_provider_name(),
            )

        now = _utc_now()
        item = SavedItem(
            id=uuid.uuid4().hex,
            url=url,
            user_id=owner_id,
            status=status,
            created_at=now,
            updated_at=now,
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_ITEM, (
                    item.id,
                    owner_id,
                    url,
                    status.value,
                    now.isoformat(timespec="microseconds"),
                    now.isoformat(timespec="microseconds"),
                ))
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._store_error("create", exc) from exc

        logger.debug("item_created", item_id=item.id, status=status.value)
        return item

    async def update(self, item_id: str, owner_id: str, fields: ItemUpdate) -> SavedItem:
        changes = fields.model_dump(exclude_unset=True)
        # A status explicitly set to None means "leave it".
        if changes.get("status", ...) is None:
            del changes["status"]

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_ITEM, (item_id, owner_id))
                row = await cursor.fetchone()
                if row is None:
                    raise ItemNotFoundError(
                        message=f"Item {item_id} not found",
                        provider_name=self.get_provider_name(),
                    )
                current = self._row_to_item(dict(row))

                if "status" in changes:
                    target = ItemStatus(changes["status"])
                    if not current.status.can_transition_to(target):
                        raise InvalidStatusTransitionError(
                            message=(
                                f"Item {item_id} cannot move from "
                                f"{current.status.value} to {target.value}"
                            ),
                            provider_name=self.get_provider_name(),
                        )

                now = _utc_now()
                columns = [c for c in _UPDATABLE_COLUMNS if c in changes]
                assignments = ", ".join(f"{c} = ?" for c in [*columns, "updated_at"])
                params = [self._to_column(c, changes[c]) for c in columns]
                params.extend([now.isoformat(timespec="microseconds"), item_id, owner_id])
                await db.execute(
                    f"UPDATE items SET {assignments} WHERE id = ? AND user_id = ?;",  # noqa: S608
                    params,
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._store_error("update", exc) from exc

        updated = SavedItem.model_validate(
            {**current.model_dump(), **changes, "updated_at": now}
        )
        if "status" in changes:
            logger.debug(
                "item_status_changed",
                item_id=item_id,
                from_status=current.status.value,
                to_status=updated.status.value,
            )
        return updated

    async def find_many(
        self,
        owner_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SavedItem]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    _SELECT_ITEMS,
                    (owner_id, -1 if limit is None else limit, offset),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise self._store_error("find_many", exc) from exc
        return [self._row_to_item(dict(r)) for r in rows]

    async def find_unique(self, item_id: str, owner_id: str) -> SavedItem:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_ITEM, (item_id, owner_id))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise self._store_error("find_unique", exc) from exc

        if row is None:
            raise ItemNotFoundError(
                message=f"Item {item_id} not found",
                provider_name=self.get_provider_name(),
            )
        return self._row_to_item(dict(row))

    # -- Internal helpers -------------------------------------------------

    def _store_error(self, operation: str, exc: Exception) -> StoreError:
        logger.error("item_store_error", operation=operation, error=str(exc))
        return StoreError(
            message=f"Item store {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )

    @staticmethod
    def _to_column(column: str, value: Any) -> Any:
        """Convert a model_dump value into what the column stores."""
        if value is None:
            return None
        if column == "status":
            return ItemStatus(value).value
        if column in ("tags", "products"):
            return json.dumps(value)
        if column == "published_at":
            return value.isoformat()
        return value

    @staticmethod
    def _row_to_item(row: dict[str, Any]) -> SavedItem:
        products = json.loads(row["products"]) if row.get("products") else None
        return SavedItem(
            id=row["id"],
            url=row["url"],
            user_id=row["user_id"],
            status=ItemStatus(row["status"]),
            title=row.get("title"),
            content=row.get("content"),
            og_image=row.get("og_image"),
            author=row.get("author"),
            published_at=row.get("published_at"),
            products=products,
            summary=row.get("summary"),
            tags=json.loads(row.get("tags") or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
