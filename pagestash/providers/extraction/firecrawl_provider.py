"""Firecrawl extraction provider.

Talks to the Firecrawl REST API (``/v2/scrape``, ``/v2/map``,
``/v2/search``) over httpx.  Every failure, whether transport, HTTP status,
or a ``success: false`` body, is raised as :class:`ExtractionError` so callers
see one exception type regardless of what went wrong.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from pagestash.config.settings import Settings
from pagestash.interfaces.extraction_provider import (
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    IExtractionProvider,
    SiteLink,
)
from pagestash.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 60.0


class FirecrawlExtractionProvider(IExtractionProvider):
    """Extraction backed by the hosted Firecrawl API.

    Parameters
    ----------
    settings:
        Supplies the API key, base URL, and request timeout.
    http_client:
        Optional pre-built client (tests pass one with a ``MockTransport``).
        When omitted the provider builds and owns its own client.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.firecrawl_api_key
        self._base_url = settings.firecrawl_base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.firecrawl_timeout or _DEFAULT_TIMEOUT),
        )

    # ------------------------------------------------------------------
    # IExtractionProvider implementation
    # ------------------------------------------------------------------

    async def scrape(self, request: ExtractionRequest) -> ExtractionResult:
        formats: list[Any] = list(request.formats)
        formats.append({"type": "json", "schema": request.json_schema})
        body = {
            "url": request.url,
            "formats": formats,
            "onlyMainContent": request.only_main_content,
        }

        payload = await self._post("/v2/scrape", body, target=request.url)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ExtractionError(
                message=f"Scrape response for {request.url} has no data object",
                provider_name=self.get_provider_name(),
            )

        metadata = data.get("metadata") or {}
        result = ExtractionResult(
            metadata=ExtractionMetadata(
                title=_first_str(metadata.get("title")),
                og_image=_first_str(metadata.get("ogImage")),
            ),
            markdown=data.get("markdown"),
            json=data.get("json"),
        )
        logger.info(
            "firecrawl_scraped",
            url=request.url,
            markdown_length=len(result.markdown or ""),
            has_json=result.json is not None,
        )
        return result

    async def map_site(
        self, url: str, search: str | None = None, limit: int = 25
    ) -> list[SiteLink]:
        body: dict[str, Any] = {"url": url, "limit": limit}
        if search:
            body["search"] = search

        payload = await self._post("/v2/map", body, target=url)
        links = [_to_link(raw) for raw in payload.get("links") or []]
        links = [link for link in links if link is not None][:limit]
        logger.info("firecrawl_mapped", url=url, links=len(links))
        return links

    async def search_web(
        self,
        query: str,
        limit: int = 15,
        location: str | None = None,
        tbs: str | None = None,
    ) -> list[SiteLink]:
        body: dict[str, Any] = {"query": query, "limit": limit}
        if location:
            body["location"] = location
        if tbs:
            body["tbs"] = tbs

        payload = await self._post("/v2/search", body, target=query)
        data = payload.get("data") or []
        # v2 groups hits by source; only web results are relevant here.
        if isinstance(data, dict):
            data = data.get("web") or []
        hits = [_to_link(raw) for raw in data]
        hits = [hit for hit in hits if hit is not None][:limit]
        logger.info("firecrawl_searched", query=query, results=len(hits))
        return hits

    def get_provider_name(self) -> str:
        return "firecrawl"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _post(self, path: str, body: dict[str, Any], target: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            response = await self._client.post(
                f"{self._base_url}{path}", json=body, headers=headers
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise ExtractionError(
                message=f"Timeout calling {path} for {target}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(
                message=f"HTTP {exc.response.status_code} calling {path} for {target}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(
                message=f"HTTP error calling {path} for {target}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except ValueError as exc:
            raise ExtractionError(
                message=f"Invalid JSON from {path} for {target}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not isinstance(payload, dict) or payload.get("success") is False:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise ExtractionError(
                message=f"{path} failed for {target}: {error or 'unsuccessful response'}",
                provider_name=self.get_provider_name(),
            )
        return payload


def _first_str(value: Any) -> str | None:
    """Metadata fields arrive as a string, a list of strings, or nothing."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str) and value:
        return value
    return None


def _to_link(raw: Any) -> SiteLink | None:
    if isinstance(raw, str):
        return SiteLink(url=raw)
    if isinstance(raw, dict) and isinstance(raw.get("url"), str):
        return SiteLink(
            url=raw["url"],
            title=raw.get("title") or None,
            description=raw.get("description") or None,
        )
    return None
