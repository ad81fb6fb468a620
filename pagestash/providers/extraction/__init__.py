"""Page-extraction provider adapters (IExtractionProvider)."""

from pagestash.providers.extraction.firecrawl_provider import FirecrawlExtractionProvider

__all__ = ["FirecrawlExtractionProvider"]
