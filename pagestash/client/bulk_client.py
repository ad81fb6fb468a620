"""Consumer side of the bulk import progress stream.

:class:`BulkImportClient` posts a URL batch to a running pageStash server
and iterates the NDJSON response as :class:`BulkScrapeProgress` events.
:func:`collect_summary` folds any progress iterator (remote or a local
orchestrator) into a :class:`BatchSummary`.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator, Callable, Sequence
from typing import Any

import httpx
import structlog

from pagestash.models.progress import BatchSummary, BulkScrapeProgress
from pagestash.utils.errors import (
    AuthenticationError,
    BatchValidationError,
    PageStashError,
    StoreError,
)

logger = structlog.get_logger(logger_name=__name__)

_BULK_PATH = "/api/v1/items/bulk"

_ERRORS_BY_STATUS: dict[int, type[PageStashError]] = {
    401: AuthenticationError,
    422: BatchValidationError,
}

_ERRORS_BY_NAME: dict[str, type[PageStashError]] = {
    "AuthenticationError": AuthenticationError,
    "BatchValidationError": BatchValidationError,
    "StoreError": StoreError,
}

ProgressCallback = Callable[[BulkScrapeProgress], Any]


async def collect_summary(
    events: AsyncIterable[BulkScrapeProgress],
    on_progress: ProgressCallback | None = None,
) -> BatchSummary:
    """Consume *events* and return the aggregated counts."""
    summary = BatchSummary()
    async for event in events:
        summary.record(event)
        if on_progress is not None:
            on_progress(event)
    return summary


class BulkImportClient:
    """HTTP client for ``POST /api/v1/items/bulk``.

    Parameters
    ----------
    base_url:
        Server root, e.g. ``http://localhost:8000``.
    token:
        Session token sent as a Bearer header.
    user_id:
        Sent as ``X-User-Id`` for servers running without a session secret.
    http_client:
        Optional pre-built client (tests pass one with a ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        user_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers: dict[str, str] = {"Accept": "application/x-ndjson"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        if user_id:
            self._headers["X-User-Id"] = user_id
        self._owns_client = http_client is None
        # No read timeout by default: a batch may run for a long time.
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.batch_id: str | None = None

    async def stream(self, urls: Sequence[str]) -> AsyncIterator[BulkScrapeProgress]:
        """Submit *urls* and yield progress events as the server sends them.

        Raises
        ------
        AuthenticationError, BatchValidationError
            If the server rejects the request before streaming.
        StoreError
            If the server aborts the batch mid-stream.
        PageStashError
            For any other non-2xx response or transport failure.
        """
        try:
            async with self._client.stream(
                "POST",
                f"{self._base_url}{_BULK_PATH}",
                json={"urls": list(urls)},
                headers=self._headers,
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise self._error_from_response(response)

                self.batch_id = response.headers.get("x-batch-id")
                logger.info("bulk_stream_opened", batch_id=self.batch_id, total=len(urls))
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    yield self._parse_line(line)
        except httpx.HTTPError as exc:
            raise PageStashError(
                message=f"Bulk import request failed: {exc}",
                provider_name="pagestash-server",
            ) from exc

    async def run(
        self,
        urls: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummary:
        """Submit *urls*, consume the whole stream, and return the summary."""
        return await collect_summary(self.stream(urls), on_progress)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> BulkImportClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_line(line: str) -> BulkScrapeProgress:
        data = json.loads(line)
        if "error" in data and "completed" not in data:
            error_cls = _ERRORS_BY_NAME.get(data["error"], PageStashError)
            raise error_cls(
                message=data.get("detail") or data["error"],
                provider_name="pagestash-server",
            )
        return BulkScrapeProgress.model_validate(data)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> PageStashError:
        detail: str = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            raw_detail = body.get("detail")
            detail = raw_detail if isinstance(raw_detail, str) else json.dumps(raw_detail)
        error_cls = _ERRORS_BY_STATUS.get(response.status_code, PageStashError)
        return error_cls(
            message=f"HTTP {response.status_code}: {detail}",
            provider_name="pagestash-server",
        )
