"""URL batch validation shared by the HTTP layer and the CLI."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlsplit

from pagestash.utils.errors import BatchValidationError

_ALLOWED_SCHEMES = frozenset({"http", "https"})


def is_absolute_url(url: str) -> bool:
    """Return ``True`` for an absolute ``http(s)`` URL with a host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in _ALLOWED_SCHEMES and bool(parts.hostname)


def validate_urls(urls: Iterable[str], max_urls: int | None = None) -> list[str]:
    """Check a URL batch before any item is created.

    Surrounding whitespace is stripped; order and duplicates are kept
    because every submitted URL gets its own item.

    Raises
    ------
    BatchValidationError
        If the batch is empty, larger than *max_urls*, or contains a
        string that is not an absolute http(s) URL.
    """
    cleaned = [u.strip() for u in urls]
    if not cleaned:
        raise BatchValidationError("At least one URL is required")
    if max_urls is not None and len(cleaned) > max_urls:
        raise BatchValidationError(
            f"Batch of {len(cleaned)} URLs exceeds the limit of {max_urls}"
        )

    for position, url in enumerate(cleaned):
        if not is_absolute_url(url):
            raise BatchValidationError(f"Malformed URL at position {position}: {url!r}")
    return cleaned
