"""Custom exception hierarchy for pageStash.

All application exceptions inherit from :class:`PageStashError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "firecrawl", "openai", "sqlite_items") caused the
failure.

    PageStashError  (base -- catch-all for any pageStash error)
    +-- ExtractionError              (scrape / structured extraction call)
    +-- StoreError                   (item store unavailable / write failed)
    |   +-- ItemNotFoundError        (missing row, or owned by someone else)
    |   +-- InvalidStatusTransitionError (status would move backwards)
    +-- BatchValidationError         (empty or malformed URL batch)
    +-- AuthenticationError          (no / invalid session identity)
    +-- LLMError                     (summary or tag generation failed)
    +-- ItemNotReadyError            (summary asked for an item without content)

Per-item ``ExtractionError`` is absorbed by the bulk orchestrator into a
``FAILED`` row.  The others surface to the caller and are turned into JSON
error bodies by :class:`pagestash.api.middleware.ErrorHandlingMiddleware`.
"""


class PageStashError(Exception):
    """Base exception for all pageStash errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets,
    e.g. ``[firecrawl] HTTP 502 scraping https://...``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# External capabilities
# ---------------------------------------------------------------------------

class ExtractionError(PageStashError):
    """Raised when the scraping service fails (network, timeout, bad payload)."""

    status_code = 502

    def __init__(
        self,
        message: str = "Page extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(PageStashError):
    """Raised when an LLM API call fails or returns an unusable response."""

    status_code = 502

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class StoreError(PageStashError):
    """Raised when the item store cannot complete a read or write."""

    def __init__(
        self,
        message: str = "Item store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ItemNotFoundError(StoreError):
    """Raised when an item does not exist *for the requesting owner*.

    Rows owned by another user produce this same error so that callers
    cannot discover whether another user's item exists.
    """

    status_code = 404

    def __init__(
        self,
        message: str = "Item not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidStatusTransitionError(StoreError):
    """Raised when an update would move an item's status backwards."""

    status_code = 409

    def __init__(
        self,
        message: str = "Invalid item status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------

class BatchValidationError(PageStashError):
    """Raised when a URL batch is empty, too large, or contains a malformed URL."""

    status_code = 422

    def __init__(
        self,
        message: str = "Invalid URL batch",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthenticationError(PageStashError):
    """Raised when no valid owning-user identity accompanies a request."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ItemNotReadyError(PageStashError):
    """Raised when an item has no extracted content to work with yet."""

    status_code = 409

    def __init__(
        self,
        message: str = "Item has no content to summarize",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

