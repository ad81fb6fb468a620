"""Configuration module: exports Settings and load_config."""

from pagestash.config.loader import load_config
from pagestash.config.settings import Settings

__all__ = ["Settings", "load_config"]
