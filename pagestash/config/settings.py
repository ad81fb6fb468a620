"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) real environment variables, the
project-root ``.env`` file, then the defaults below.  Field names map to
upper-cased env vars: ``firecrawl_api_key`` <- ``FIRECRAWL_API_KEY``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from pagestash.models.extraction import ExtractionVariant


class Settings(BaseSettings):
    """pageStash application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Scraping (Firecrawl) ===
    firecrawl_api_key: str = ""
    firecrawl_base_url: str = "https://api.firecrawl.dev"
    firecrawl_timeout: float = 60.0
    # Decided once per deployment: which structured payload shape the
    # extraction schema asks for and the item store persists.
    extraction_variant: ExtractionVariant = ExtractionVariant.ARTICLE

    # === LLM (OpenAI-compatible; OpenRouter by default) ===
    openai_api_key: str = ""
    openai_base_url: str = "https://openrouter.ai/api/v1"
    openai_text_model: str = "xiaomi/mimo-v2-flash:free"

    # === Persistence ===
    items_db_path: str = "data/items.db"

    # === Sessions ===
    # Empty secret = development mode: the X-User-Id header is trusted.
    session_secret: str = ""
    session_ttl_hours: int = 168

    # === Bulk import ===
    bulk_max_urls: int = 100

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    def get_available_providers(self) -> dict[str, bool]:
        """Report which external capabilities have credentials configured."""
        return {
            "firecrawl": bool(self.firecrawl_api_key),
            "llm": bool(self.openai_api_key),
        }
