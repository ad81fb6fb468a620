"""Abstract base class for page-extraction service providers.

Defines the contract for turning a URL into markdown plus a structured JSON
payload.  Implementations wrap a hosted scraping API (Firecrawl today); the
orchestrator and services depend only on this interface, so the engine can
be swapped without touching the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ExtractionRequest:
    """One scrape request.

    Attributes
    ----------
    url:
        Absolute URL of the page to scrape.
    json_schema:
        JSON schema describing the structured payload to extract.
    formats:
        Output formats requested besides the structured JSON.  The pipeline
        always asks for ``("markdown",)``.
    only_main_content:
        Strip navigation, footers, and other boilerplate before extraction.
    """

    url: str
    json_schema: dict[str, Any]
    formats: tuple[str, ...] = ("markdown",)
    only_main_content: bool = True


@dataclass(frozen=True)
class ExtractionMetadata:
    """Page metadata reported alongside the extracted content."""

    title: str | None = None
    og_image: str | None = None


@dataclass(frozen=True)
class ExtractionResult:
    """Raw result of a scrape, before it is reduced into item fields.

    Attributes
    ----------
    metadata:
        Title and Open Graph image, when the page declared them.
    markdown:
        Main content rendered as markdown, or ``None``.
    json:
        The structured payload exactly as the service returned it.  It is
        validated against the deployment's variant later.
    """

    metadata: ExtractionMetadata = field(default_factory=ExtractionMetadata)
    markdown: str | None = None
    json: Any = None


@dataclass(frozen=True)
class SiteLink:
    """A search hit or mapped link."""

    url: str
    title: str | None = None
    description: str | None = None


class IExtractionProvider(ABC):
    """Contract for services that scrape and discover web pages."""

    @abstractmethod
    async def scrape(self, request: ExtractionRequest) -> ExtractionResult:
        """Scrape one page.

        Parameters
        ----------
        request:
            URL, schema, and format options for the call.

        Returns
        -------
        ExtractionResult
            Markdown, metadata, and the raw structured payload.

        Raises
        ------
        pagestash.utils.errors.ExtractionError
            On any failure: network, timeout, non-2xx status, or an
            unsuccessful response body.
        """

    @abstractmethod
    async def map_site(
        self, url: str, search: str | None = None, limit: int = 25
    ) -> list[SiteLink]:
        """Return up to *limit* links found on the site rooted at *url*.

        Raises
        ------
        pagestash.utils.errors.ExtractionError
            If the mapping call fails.
        """

    @abstractmethod
    async def search_web(
        self,
        query: str,
        limit: int = 15,
        location: str | None = None,
        tbs: str | None = None,
    ) -> list[SiteLink]:
        """Run a web search and return up to *limit* hits.

        ``tbs`` is a time-based filter such as ``"qdr:w"`` (past week).

        Raises
        ------
        pagestash.utils.errors.ExtractionError
            If the search call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for this provider, e.g. ``"firecrawl"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials for the service are configured."""
