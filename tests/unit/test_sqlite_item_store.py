"""Unit tests for SQLiteItemStore against a temporary database."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from pagestash.models.extraction import Product
from pagestash.models.item import ItemStatus, ItemUpdate
from pagestash.providers.store.sqlite_item_store import SQLiteItemStore
from pagestash.utils.errors import InvalidStatusTransitionError, ItemNotFoundError, StoreError


# --- Initialization ----------------------------------------------------------

@pytest.mark.asyncio
async def test_provider_name(item_store):
    assert item_store.get_provider_name() == "sqlite_items"


@pytest.mark.asyncio
async def test_double_initialize_is_idempotent(item_store):
    await item_store.initialize()


# --- Create / read -----------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_find_unique(item_store):
    created = await item_store.create("u1", "https://example.com/a", ItemStatus.PENDING)
    assert created.status is ItemStatus.PENDING
    assert created.user_id == "u1"

    found = await item_store.find_unique(created.id, "u1")
    assert found.id == created.id
    assert found.url == "https://example.com/a"
    assert found.tags == []
    assert found.title is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ItemStatus.COMPLETED, ItemStatus.FAILED])
async def test_create_in_terminal_status_rejected(item_store, status):
    with pytest.raises(InvalidStatusTransitionError):
        await item_store.create("u1", "https://example.com", status)
    assert await item_store.find_many("u1") == []


@pytest.mark.asyncio
async def test_find_unique_missing_raises(item_store):
    with pytest.raises(ItemNotFoundError):
        await item_store.find_unique("does-not-exist", "u1")


@pytest.mark.asyncio
async def test_other_owner_cannot_read(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PENDING)
    with pytest.raises(ItemNotFoundError):
        await item_store.find_unique(created.id, "u2")


@pytest.mark.asyncio
async def test_find_many_newest_first_and_owner_scoped(item_store):
    first = await item_store.create("u1", "https://example.com/1", ItemStatus.PENDING)
    await asyncio.sleep(0.002)
    second = await item_store.create("u1", "https://example.com/2", ItemStatus.PENDING)
    await item_store.create("u2", "https://example.com/other", ItemStatus.PENDING)

    items = await item_store.find_many("u1")
    assert [i.id for i in items] == [second.id, first.id]


@pytest.mark.asyncio
async def test_find_many_pagination(item_store):
    for n in range(5):
        await item_store.create("u1", f"https://example.com/{n}", ItemStatus.PENDING)
    page = await item_store.find_many("u1", limit=2, offset=1)
    assert len(page) == 2
    assert page[0].url == "https://example.com/3"


# --- Update ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_to_completed_persists_fields(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PENDING)
    published = datetime(2024, 3, 1, tzinfo=timezone.utc)

    updated = await item_store.update(
        created.id,
        "u1",
        ItemUpdate(
            status=ItemStatus.COMPLETED,
            title="Title",
            content="Body",
            author="Jane",
            published_at=published,
        ),
    )
    assert updated.status is ItemStatus.COMPLETED
    assert updated.updated_at >= created.updated_at

    reloaded = await item_store.find_unique(created.id, "u1")
    assert reloaded.title == "Title"
    assert reloaded.content == "Body"
    assert reloaded.author == "Jane"
    assert reloaded.published_at == published


@pytest.mark.asyncio
async def test_update_persists_products_and_tags(item_store):
    created = await item_store.create("u1", "https://shop.example", ItemStatus.PROCESSING)
    await item_store.update(
        created.id,
        "u1",
        ItemUpdate(
            status=ItemStatus.COMPLETED,
            products=[Product(title="Widget", price="4.99")],
        ),
    )
    await item_store.update(created.id, "u1", ItemUpdate(summary="Short.", tags=["a", "b"]))

    reloaded = await item_store.find_unique(created.id, "u1")
    assert reloaded.products == [Product(title="Widget", price="4.99")]
    assert reloaded.summary == "Short."
    assert reloaded.tags == ["a", "b"]
    assert reloaded.status is ItemStatus.COMPLETED


@pytest.mark.asyncio
async def test_update_without_status_leaves_other_fields(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PENDING)
    await item_store.update(created.id, "u1", ItemUpdate(status=ItemStatus.COMPLETED, title="Kept"))
    await item_store.update(created.id, "u1", ItemUpdate(summary="New summary"))

    reloaded = await item_store.find_unique(created.id, "u1")
    assert reloaded.title == "Kept"
    assert reloaded.summary == "New summary"


@pytest.mark.asyncio
async def test_backward_transition_rejected(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PROCESSING)
    with pytest.raises(InvalidStatusTransitionError):
        await item_store.update(created.id, "u1", ItemUpdate(status=ItemStatus.PENDING))


@pytest.mark.asyncio
async def test_terminal_status_is_final(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PENDING)
    await item_store.update(created.id, "u1", ItemUpdate(status=ItemStatus.FAILED))
    with pytest.raises(InvalidStatusTransitionError):
        await item_store.update(created.id, "u1", ItemUpdate(status=ItemStatus.COMPLETED))

    reloaded = await item_store.find_unique(created.id, "u1")
    assert reloaded.status is ItemStatus.FAILED


@pytest.mark.asyncio
async def test_other_owner_cannot_update(item_store):
    created = await item_store.create("u1", "https://example.com", ItemStatus.PENDING)
    with pytest.raises(ItemNotFoundError):
        await item_store.update(created.id, "u2", ItemUpdate(status=ItemStatus.FAILED))

    reloaded = await item_store.find_unique(created.id, "u1")
    assert reloaded.status is ItemStatus.PENDING


@pytest.mark.asyncio
async def test_sqlite_failure_surfaces_as_store_error(tmp_path):
    # A directory where the database file should be makes every connect fail.
    db_dir = tmp_path / "items.db"
    db_dir.mkdir()
    store = SQLiteItemStore(db_path=db_dir)
    with pytest.raises(StoreError):
        await store.create("u1", "https://example.com", ItemStatus.PENDING)
