"""Shared pytest fixtures for the pageStash test suite."""

from __future__ import annotations

import os
import tempfile
from typing import Any

import pytest

from pagestash.config.settings import Settings
from pagestash.interfaces.extraction_provider import (
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    IExtractionProvider,
    SiteLink,
)
from pagestash.models.extraction import ExtractionVariant
from pagestash.pipeline.item_lifecycle import ItemProcessor
from pagestash.providers.store.sqlite_item_store import SQLiteItemStore
from pagestash.utils.errors import ExtractionError


class FakeExtractionProvider(IExtractionProvider):
    """In-memory extraction provider.

    ``responses`` maps a URL to either an :class:`ExtractionResult` or an
    exception instance to raise.  Unknown URLs raise ExtractionError.
    Every request is appended to ``requests``.
    """

    def __init__(self) -> None:
        self.responses: dict[str, ExtractionResult | Exception] = {}
        self.requests: list[ExtractionRequest] = []
        self.links: list[SiteLink] = []

    async def scrape(self, request: ExtractionRequest) -> ExtractionResult:
        self.requests.append(request)
        response = self.responses.get(request.url)
        if response is None:
            raise ExtractionError(f"no fake response for {request.url}", provider_name="fake")
        if isinstance(response, Exception):
            raise response
        return response

    async def map_site(self, url: str, search: str | None = None, limit: int = 25) -> list[SiteLink]:
        return self.links[:limit]

    async def search_web(
        self,
        query: str,
        limit: int = 15,
        location: str | None = None,
        tbs: str | None = None,
    ) -> list[SiteLink]:
        return self.links[:limit]

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True


def article_result(
    title: str | None = "A Title",
    markdown: str | None = "# Heading\n\nBody text.",
    og_image: str | None = None,
    author: str | None = "Jane Doe",
    published_at: str | None = "2024-03-01",
) -> ExtractionResult:
    return ExtractionResult(
        metadata=ExtractionMetadata(title=title, og_image=og_image),
        markdown=markdown,
        json={"author": author, "publishedAt": published_at},
    )


@pytest.fixture
def tmp_db_path():
    """Path to a throwaway SQLite file, removed after the test."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(tmp.name + suffix):
            os.unlink(tmp.name + suffix)


@pytest.fixture
async def item_store(tmp_db_path):
    """An initialized SQLiteItemStore on a temp database."""
    store = SQLiteItemStore(db_path=tmp_db_path)
    await store.initialize()
    return store


@pytest.fixture
def fake_extractor() -> FakeExtractionProvider:
    return FakeExtractionProvider()


@pytest.fixture
def make_article_result():
    """Factory for article-variant extraction results."""
    return article_result


@pytest.fixture
def processor(fake_extractor, item_store) -> ItemProcessor:
    return ItemProcessor(
        extraction_provider=fake_extractor,
        item_store=item_store,
        variant=ExtractionVariant.ARTICLE,
    )


@pytest.fixture
def test_settings(tmp_db_path) -> Settings:
    """Settings isolated from the developer's environment."""
    overrides: dict[str, Any] = {
        "firecrawl_api_key": "fc-test",
        "openai_api_key": "sk-test",
        "items_db_path": tmp_db_path,
        "session_secret": "",
        "app_env": "testing",
    }
    return Settings(_env_file=None, **overrides)
