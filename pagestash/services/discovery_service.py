"""URL discovery for the bulk importer: site maps and web search.

Both calls go through :class:`IExtractionProvider` and return
:class:`SiteLink` lists whose URLs can be fed straight into a bulk import.
Default limits come from the ``discovery`` section of ``config.yaml``.
"""

from __future__ import annotations

from typing import Any

import structlog

from pagestash.interfaces.extraction_provider import IExtractionProvider, SiteLink
from pagestash.utils.errors import BatchValidationError
from pagestash.utils.urls import is_absolute_url

logger = structlog.get_logger(logger_name=__name__)

_DEFAULTS: dict[str, Any] = {
    "map_limit": 25,
    "search_limit": 15,
    "search_location": None,
    "search_tbs": None,
}


class DiscoveryService:
    """Finds candidate URLs on a site or across the web."""

    def __init__(
        self,
        extraction_provider: IExtractionProvider,
        config: dict[str, Any] | None = None,
    ) -> None:
        self._provider = extraction_provider
        self._config = {**_DEFAULTS, **(config or {})}

    async def map_site(
        self, url: str, search: str | None = None, limit: int | None = None
    ) -> list[SiteLink]:
        """List up to *limit* links on the site at *url*, optionally filtered by *search*."""
        url = url.strip()
        if not is_absolute_url(url):
            raise BatchValidationError(f"Malformed URL: {url!r}")
        limit = limit or int(self._config["map_limit"])
        links = await self._provider.map_site(url, search=search or None, limit=limit)
        logger.info("site_mapped", url=url, search=search, links=len(links))
        return links

    async def search_web(
        self,
        query: str,
        limit: int | None = None,
        location: str | None = None,
        tbs: str | None = None,
    ) -> list[SiteLink]:
        """Search the web for *query*; location/tbs fall back to configured defaults."""
        query = query.strip()
        if not query:
            raise BatchValidationError("Search query must not be empty")
        return await self._provider.search_web(
            query,
            limit=limit or int(self._config["search_limit"]),
            location=location or self._config["search_location"],
            tbs=tbs or self._config["search_tbs"],
        )
