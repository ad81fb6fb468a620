"""pageStash: save web pages, extract them, summarize them."""

__version__ = "0.1.0"
