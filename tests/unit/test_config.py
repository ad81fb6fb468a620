"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

from pagestash.config.loader import DEFAULT_CONFIG, load_config
from pagestash.config.settings import Settings
from pagestash.models.extraction import ExtractionVariant


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        for var in ("FIRECRAWL_API_KEY", "OPENAI_API_KEY", "SESSION_SECRET", "EXTRACTION_VARIANT"):
            monkeypatch.delenv(var, raising=False)
        s = _settings()
        assert s.extraction_variant is ExtractionVariant.ARTICLE
        assert s.session_secret == ""
        assert s.bulk_max_urls == 100
        assert s.get_available_providers() == {"firecrawl": False, "llm": False}

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("EXTRACTION_VARIANT", "products")
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-123")
        monkeypatch.setenv("BULK_MAX_URLS", "7")
        s = _settings()
        assert s.extraction_variant is ExtractionVariant.PRODUCTS
        assert s.bulk_max_urls == 7
        assert s.get_available_providers()["firecrawl"] is True

    def test_is_development(self) -> None:
        assert _settings(app_env="development").is_development
        assert not _settings(app_env="production").is_development


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config["discovery"]["map_limit"] == 25
        assert config["discovery"]["search_limit"] == 15
        assert config["summary"]["max_tags"] == 5

    def test_yaml_values_merge_over_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "discovery:\n  map_limit: 10\n  search_location: Mexico\n",
            encoding="utf-8",
        )
        config = load_config(str(path))
        assert config["discovery"]["map_limit"] == 10
        assert config["discovery"]["search_location"] == "Mexico"
        # Untouched siblings keep their defaults.
        assert config["discovery"]["search_limit"] == 15

    def test_extra_sections_pass_through(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("summary:\n  max_tags: 3\nexperimental:\n  flag: true\n", encoding="utf-8")
        config = load_config(str(path))
        assert config["summary"] == {"temperature": 0.3, "max_tokens": 1200, "max_tags": 3}
        assert config["experimental"] == {"flag": True}

    def test_defaults_are_not_mutated(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("discovery:\n  map_limit: 3\n", encoding="utf-8")
        load_config(str(path))
        assert DEFAULT_CONFIG["discovery"]["map_limit"] == 25

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        config = load_config(str(path))
        assert config["summary"]["temperature"] == 0.3

    def test_repo_config_file_loads(self) -> None:
        repo_config = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        config = load_config(str(repo_config))
        assert config["discovery"]["map_limit"] == 25
