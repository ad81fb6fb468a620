"""Utility modules for pageStash.

- **errors** -- Exception hierarchy rooted at PageStashError.
- **logging** -- structlog setup: console output in development, JSON in
  production.
- **dates** -- Lenient publish-date parsing that never raises.
- **urls** -- URL batch validation used before a bulk import starts.
"""

from pagestash.utils.dates import parse_published_at
from pagestash.utils.errors import (
    AuthenticationError,
    BatchValidationError,
    ExtractionError,
    InvalidStatusTransitionError,
    ItemNotFoundError,
    ItemNotReadyError,
    LLMError,
    PageStashError,
    StoreError,
)
from pagestash.utils.logging import configure_logging, get_logger
from pagestash.utils.urls import is_absolute_url, validate_urls

__all__ = [
    "AuthenticationError",
    "BatchValidationError",
    "ExtractionError",
    "InvalidStatusTransitionError",
    "ItemNotFoundError",
    "ItemNotReadyError",
    "LLMError",
    "PageStashError",
    "StoreError",
    "configure_logging",
    "get_logger",
    "is_absolute_url",
    "parse_published_at",
    "validate_urls",
]
