"""Integration tests for the FastAPI app using TestClient.

The app is built through ``create_app`` with real services on a temporary
SQLite store; only the extraction provider and the LLM are faked.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from pagestash.api.auth import create_session_token
from pagestash.interfaces.extraction_provider import SiteLink
from pagestash.interfaces.llm_provider import ILLMProvider
from pagestash.main import create_app
from pagestash.models.item import ItemStatus
from pagestash.pipeline.bulk_scraper import BulkScrapeOrchestrator
from pagestash.pipeline.item_lifecycle import ItemProcessor
from pagestash.pipeline.progress_tracker import ProgressTracker
from pagestash.providers.store.sqlite_item_store import SQLiteItemStore
from pagestash.providers.store.sqlite_product_store import SQLiteProductStore
from pagestash.services.discovery_service import DiscoveryService
from pagestash.services.import_service import ImportService
from pagestash.services.item_service import ItemService
from pagestash.services.summary_service import SummaryService
from pagestash.utils.errors import LLMError, StoreError

OK_URL = "https://example.com/good"
BAD_URL = "https://example.com/broken"
ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------


class _CreateFailsAfter(SQLiteItemStore):
    """Item store whose ``create`` starts failing after *allowed* calls."""

    def __init__(self, db_path: str, allowed: int) -> None:
        super().__init__(db_path)
        self._allowed = allowed

    async def create(self, owner_id, url, status):
        if self._allowed <= 0:
            raise StoreError("database is locked", provider_name="sqlite_items")
        self._allowed -= 1
        return await super().create(owner_id, url, status)


def _build_components(store: SQLiteItemStore, extractor, llm, settings) -> dict:
    tracker = ProgressTracker()
    products = SQLiteProductStore(settings.items_db_path)
    processor = ItemProcessor(
        extraction_provider=extractor,
        item_store=store,
        variant=settings.extraction_variant,
    )
    return {
        "extraction_provider": extractor,
        "item_store": store,
        "llm_provider": llm,
        "progress_tracker": tracker,
        "orchestrator": BulkScrapeOrchestrator(
            item_store=store,
            processor=processor,
            progress_tracker=tracker,
            max_urls=settings.bulk_max_urls,
        ),
        "item_service": ItemService(item_store=store, processor=processor),
        "summary_service": SummaryService(llm=llm, item_store=store),
        "discovery_service": DiscoveryService(extraction_provider=extractor),
        "product_store": products,
        "import_service": ImportService(product_store=products),
    }


def _ndjson(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


@pytest.fixture
def llm() -> MagicMock:
    provider = MagicMock(spec=ILLMProvider)
    provider.complete = AsyncMock()
    return provider


@pytest.fixture
def extractor(fake_extractor, make_article_result):
    fake_extractor.responses[OK_URL] = make_article_result(title="Good Page")
    return fake_extractor


@pytest.fixture
def client(test_settings, extractor, llm):
    store = SQLiteItemStore(test_settings.items_db_path)
    app = create_app(test_settings, components=_build_components(store, extractor, llm, test_settings))
    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Bulk import stream
# ---------------------------------------------------------------------------


class TestBulkImport:
    def test_streams_one_event_per_url(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/items/bulk",
            json={"urls": [OK_URL, BAD_URL, OK_URL]},
            headers=ALICE,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        assert response.headers["x-batch-id"]

        events = _ndjson(response)
        assert [e["completed"] for e in events] == [1, 2, 3]
        assert all(e["total"] == 3 for e in events)
        assert [e["url"] for e in events] == [OK_URL, BAD_URL, OK_URL]
        assert [e["status"] for e in events] == ["success", "failed", "success"]

    def test_items_saved_with_terminal_status(self, client: TestClient) -> None:
        client.post("/api/v1/items/bulk", json={"urls": [OK_URL, BAD_URL]}, headers=ALICE)

        items = client.get("/api/v1/items", headers=ALICE).json()
        statuses = {item["url"]: item["status"] for item in items}
        assert statuses == {OK_URL: "COMPLETED", BAD_URL: "FAILED"}
        good = next(item for item in items if item["url"] == OK_URL)
        assert good["title"] == "Good Page"
        assert good["author"] == "Jane Doe"

    @pytest.mark.parametrize(
        "urls",
        [[], ["not a url"], [OK_URL, "ftp://example.com/file"]],
    )
    def test_invalid_batch_rejected_before_any_write(self, client: TestClient, urls) -> None:
        response = client.post("/api/v1/items/bulk", json={"urls": urls}, headers=ALICE)

        assert response.status_code == 422
        assert response.json()["error"] == "BatchValidationError"
        assert client.get("/api/v1/items", headers=ALICE).json() == []

    def test_requires_user(self, client: TestClient) -> None:
        response = client.post("/api/v1/items/bulk", json={"urls": [OK_URL]})
        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationError"

    def test_store_failure_ends_stream_with_error_line(
        self, test_settings, extractor, llm
    ) -> None:
        store = _CreateFailsAfter(test_settings.items_db_path, allowed=1)
        app = create_app(test_settings, components=_build_components(store, extractor, llm, test_settings))

        with TestClient(app) as test_client:
            response = test_client.post(
                "/api/v1/items/bulk",
                json={"urls": [OK_URL, OK_URL, OK_URL]},
                headers=ALICE,
            )

        lines = _ndjson(response)
        assert response.status_code == 200
        assert lines[0]["completed"] == 1
        assert lines[-1]["error"] == "StoreError"
        assert len(lines) == 2

    def test_batch_snapshot(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/items/bulk", json={"urls": [OK_URL, BAD_URL]}, headers=ALICE
        )
        batch_id = response.headers["x-batch-id"]

        status = client.get(f"/api/v1/batches/{batch_id}", headers=ALICE)
        assert status.status_code == 200
        body = status.json()
        assert body["total"] == 2
        assert body["succeeded"] == 1
        assert body["failed"] == 1
        assert body["finished"] is True
        assert body["error"] is None
        assert len(body["item_ids"]) == 2

        # Someone else's batch looks unknown.
        assert client.get(f"/api/v1/batches/{batch_id}", headers=BOB).status_code == 404

    def test_unknown_batch(self, client: TestClient) -> None:
        assert client.get("/api/v1/batches/nope", headers=ALICE).status_code == 404


# ---------------------------------------------------------------------------
# Single scrape and reads
# ---------------------------------------------------------------------------


class TestItems:
    def test_scrape_returns_completed_item(self, client: TestClient) -> None:
        response = client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE)

        assert response.status_code == 200
        item = response.json()
        assert item["status"] == ItemStatus.COMPLETED.value
        assert item["user_id"] == "alice"
        assert item["content"].startswith("# Heading")

    def test_scrape_failure_returns_failed_item(self, client: TestClient) -> None:
        response = client.post("/api/v1/items/scrape", json={"url": BAD_URL}, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["status"] == "FAILED"

    def test_scrape_outcome_shape(self, client: TestClient) -> None:
        ok = client.post(
            "/api/v1/items/scrape?as_outcome=true", json={"url": OK_URL}, headers=ALICE
        ).json()
        bad = client.post(
            "/api/v1/items/scrape?as_outcome=true", json={"url": BAD_URL}, headers=ALICE
        ).json()

        assert ok["error"] is None
        assert ok["item"]["status"] == "COMPLETED"
        assert bad["item"] is None
        assert bad["error"] == "Failed to scrape url"

    def test_scrape_malformed_url(self, client: TestClient) -> None:
        response = client.post("/api/v1/items/scrape", json={"url": "example"}, headers=ALICE)
        assert response.status_code == 422

    def test_list_is_owner_scoped_and_paginated(self, client: TestClient) -> None:
        for _ in range(3):
            client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE)
        client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=BOB)

        assert len(client.get("/api/v1/items", headers=ALICE).json()) == 3
        assert len(client.get("/api/v1/items", headers=BOB).json()) == 1
        page = client.get("/api/v1/items?limit=2&offset=2", headers=ALICE).json()
        assert len(page) == 1

    def test_list_newest_first(self, client: TestClient) -> None:
        first = client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE).json()
        second = client.post("/api/v1/items/scrape", json={"url": BAD_URL}, headers=ALICE).json()

        ids = [item["id"] for item in client.get("/api/v1/items", headers=ALICE).json()]
        assert ids == [second["id"], first["id"]]

    def test_list_is_stable_without_writes(self, client: TestClient) -> None:
        client.post(
            "/api/v1/items/bulk",
            json={"urls": [OK_URL, BAD_URL, OK_URL, OK_URL]},
            headers=ALICE,
        )

        first = client.get("/api/v1/items", headers=ALICE)
        second = client.get("/api/v1/items", headers=ALICE)

        assert first.status_code == second.status_code == 200
        assert len(first.json()) == 4
        assert first.json() == second.json()

    def test_get_item_cross_owner_is_not_found(self, client: TestClient) -> None:
        item = client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE).json()

        assert client.get(f"/api/v1/items/{item['id']}", headers=ALICE).status_code == 200
        response = client.get(f"/api/v1/items/{item['id']}", headers=BOB)
        assert response.status_code == 404
        assert response.json()["error"] == "ItemNotFoundError"


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


class TestSummaries:
    def test_generate_summary_and_tags(self, client: TestClient, llm: MagicMock) -> None:
        llm.complete.side_effect = ["  A short summary.  ", "Python, Testing , web,"]
        item = client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE).json()

        response = client.post(f"/api/v1/items/{item['id']}/summary", headers=ALICE)

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == "A short summary."
        assert body["tags"] == ["python", "testing", "web"]
        assert llm.complete.await_count == 2

    def test_save_user_summary(self, client: TestClient, llm: MagicMock) -> None:
        llm.complete.return_value = "news, tech"
        item = client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE).json()

        response = client.put(
            f"/api/v1/items/{item['id']}/summary",
            json={"summary": "My own notes."},
            headers=ALICE,
        )

        assert response.status_code == 200
        assert response.json()["summary"] == "My own notes."
        assert response.json()["tags"] == ["news", "tech"]
        llm.complete.assert_awaited_once()

    def test_failed_item_cannot_be_summarized(self, client: TestClient, llm: MagicMock) -> None:
        item = client.post("/api/v1/items/scrape", json={"url": BAD_URL}, headers=ALICE).json()

        response = client.post(f"/api/v1/items/{item['id']}/summary", headers=ALICE)

        assert response.status_code == 409
        assert response.json()["error"] == "ItemNotReadyError"
        llm.complete.assert_not_awaited()

    def test_summary_for_missing_item(self, client: TestClient) -> None:
        response = client.put(
            "/api/v1/items/missing/summary", json={"summary": "x"}, headers=ALICE
        )
        assert response.status_code == 404


def _deltas(*parts: str, error: Exception | None = None):
    async def _gen():
        for part in parts:
            yield part
        if error is not None:
            raise error

    return _gen()


class TestSummaryStream:
    def _completed_item(self, client: TestClient) -> dict:
        return client.post("/api/v1/items/scrape", json={"url": OK_URL}, headers=ALICE).json()

    def test_streams_text_without_saving(self, client: TestClient, llm: MagicMock) -> None:
        llm.stream_complete.side_effect = lambda **kwargs: _deltas("A short ", "summary", ".")
        item = self._completed_item(client)

        response = client.post(f"/api/v1/items/{item['id']}/summary/stream", headers=ALICE)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "A short summary."
        prompt = llm.stream_complete.call_args.kwargs["user_prompt"]
        assert "Please summarize" in prompt
        saved = client.get(f"/api/v1/items/{item['id']}", headers=ALICE).json()
        assert saved["summary"] is None

    def test_failed_item_rejected_up_front(self, client: TestClient, llm: MagicMock) -> None:
        item = client.post("/api/v1/items/scrape", json={"url": BAD_URL}, headers=ALICE).json()

        response = client.post(f"/api/v1/items/{item['id']}/summary/stream", headers=ALICE)

        assert response.status_code == 409
        llm.stream_complete.assert_not_called()

    def test_other_owner_not_found(self, client: TestClient) -> None:
        item = self._completed_item(client)
        response = client.post(f"/api/v1/items/{item['id']}/summary/stream", headers=BOB)
        assert response.status_code == 404

    def test_llm_failure_before_first_delta(self, client: TestClient, llm: MagicMock) -> None:
        llm.stream_complete.side_effect = lambda **kwargs: _deltas(
            error=LLMError("rate limited", provider_name="mock_llm")
        )
        item = self._completed_item(client)

        response = client.post(f"/api/v1/items/{item['id']}/summary/stream", headers=ALICE)

        assert response.status_code == 502
        assert response.json()["error"] == "LLMError"

    def test_llm_failure_mid_stream_truncates(self, client: TestClient, llm: MagicMock) -> None:
        llm.stream_complete.side_effect = lambda **kwargs: _deltas(
            "Partial", error=LLMError("connection reset", provider_name="mock_llm")
        )
        item = self._completed_item(client)

        response = client.post(f"/api/v1/items/{item['id']}/summary/stream", headers=ALICE)

        assert response.status_code == 200
        assert response.text == "Partial"


# ---------------------------------------------------------------------------
# Catalogue JSON imports
# ---------------------------------------------------------------------------


CATALOGUE = json.dumps(
    {
        "primaryProducts": {
            "response": {
                "docs": [
                    {"id": "101", "name": "Trail Shoe", "price": 89.5,
                     "imageUrl": "https://img.test/101.jpg"},
                    {"id": "102", "name": "Road Shoe", "price": 120,
                     "imageUrl": "https://img.test/102.jpg"},
                ]
            }
        }
    }
)
LISTING_URL = "https://shop.example.com/shoes"


class TestCatalogueImport:
    def _import(self, client: TestClient, headers=ALICE, document: str = CATALOGUE):
        return client.post(
            "/api/v1/imports/json",
            json={"url": LISTING_URL, "json": document},
            headers=headers,
        )

    def test_import_then_list(self, client: TestClient) -> None:
        response = self._import(client)
        assert response.status_code == 200
        assert response.json() == {"success": True, "imported": 2}

        products = client.get("/api/v1/imports/json", headers=ALICE).json()["products"]
        assert [(p["product_id"], p["price"]) for p in products] == [
            ("101", "89.50"),
            ("102", "120.00"),
        ]
        assert products[0]["link"] == "https://shop.example.com/shoes.101.html"
        assert products[0]["image_url"] == "https://img.test/101.jpg"

    def test_products_are_owner_scoped(self, client: TestClient) -> None:
        self._import(client)
        assert client.get("/api/v1/imports/json", headers=BOB).json() == {"products": []}

    def test_malformed_document_rejected(self, client: TestClient) -> None:
        response = self._import(client, document='{"primaryProducts": {"docs": []}}')
        assert response.status_code == 422
        assert response.json()["error"] == "BatchValidationError"
        assert client.get("/api/v1/imports/json", headers=ALICE).json()["products"] == []

    def test_delete_clears_only_own_products(self, client: TestClient) -> None:
        self._import(client)
        self._import(client, headers=BOB)

        response = client.delete("/api/v1/imports/json", headers=ALICE)

        assert response.json() == {"success": True, "deleted": 2}
        assert client.get("/api/v1/imports/json", headers=ALICE).json()["products"] == []
        assert len(client.get("/api/v1/imports/json", headers=BOB).json()["products"]) == 2

    def test_requires_user(self, client: TestClient) -> None:
        assert self._import(client, headers={}).status_code == 401


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestDiscovery:
    def test_map_site(self, client: TestClient, extractor) -> None:
        extractor.links = [
            SiteLink(url="https://example.com/a", title="A"),
            SiteLink(url="https://example.com/b"),
        ]
        response = client.post(
            "/api/v1/discover/map", json={"url": "https://example.com", "limit": 1}, headers=ALICE
        )
        assert response.status_code == 200
        assert response.json()["links"] == [
            {"url": "https://example.com/a", "title": "A", "description": None}
        ]

    def test_map_site_rejects_malformed_url(self, client: TestClient) -> None:
        response = client.post("/api/v1/discover/map", json={"url": "example"}, headers=ALICE)
        assert response.status_code == 422

    def test_search(self, client: TestClient, extractor) -> None:
        extractor.links = [SiteLink(url="https://news.example.com", description="News")]
        response = client.post(
            "/api/v1/discover/search", json={"query": "python news"}, headers=ALICE
        )
        assert response.status_code == 200
        assert response.json()["links"][0]["description"] == "News"

    def test_blank_search_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/discover/search", json={"query": "   "}, headers=ALICE)
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Auth, health, websocket
# ---------------------------------------------------------------------------


class TestSessionAuth:
    @pytest.fixture
    def secret_client(self, test_settings, extractor, llm):
        settings = test_settings.model_copy(update={"session_secret": "api-secret"})
        store = SQLiteItemStore(settings.items_db_path)
        app = create_app(settings, components=_build_components(store, extractor, llm, settings))
        with TestClient(app) as test_client:
            yield test_client

    def test_bearer_token_accepted(self, secret_client: TestClient) -> None:
        token = create_session_token("alice", "api-secret")
        response = secret_client.get(
            "/api/v1/items", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200

    def test_dev_header_ignored(self, secret_client: TestClient) -> None:
        assert secret_client.get("/api/v1/items", headers=ALICE).status_code == 401

    def test_forged_token_rejected(self, secret_client: TestClient) -> None:
        token = create_session_token("alice", "wrong-secret")
        response = secret_client.get(
            "/api/v1/items", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["providers"] == {"firecrawl": True, "llm": True}


class TestBatchWebSocket:
    def test_snapshot_for_finished_batch(self, client: TestClient) -> None:
        response = client.post("/api/v1/items/bulk", json={"urls": [OK_URL]}, headers=ALICE)
        batch_id = response.headers["x-batch-id"]

        with client.websocket_connect(f"/ws/batches/{batch_id}", headers=ALICE) as ws:
            message = ws.receive_json()

        assert message["type"] == "status"
        assert message["batch_id"] == batch_id
        assert message["finished"] is True
        assert message["succeeded"] == 1

    def test_unknown_batch(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/batches/nope", headers=ALICE) as ws:
            assert ws.receive_json()["type"] == "error"
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_unauthenticated_connection_closed(self, client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/batches/anything"):
                pass
        assert exc_info.value.code == 1008
