"""Public interface definitions for the external services pageStash uses.

Business logic (pipeline, services) only ever talks to these abstract
classes; concrete adapters live in ``pagestash/providers/`` and are wired
together in ``pagestash/main.py``.

    Interface             ->  Concrete implementation
    ---------------------------------------------------
    IExtractionProvider   ->  FirecrawlExtractionProvider
    IItemStore            ->  SQLiteItemStore
    ILLMProvider          ->  OpenAILLMProvider
    IProductStore         ->  SQLiteProductStore
"""

from pagestash.interfaces.extraction_provider import (
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    IExtractionProvider,
    SiteLink,
)
from pagestash.interfaces.item_store import IItemStore
from pagestash.interfaces.llm_provider import ILLMProvider
from pagestash.interfaces.product_store import IProductStore

__all__ = [
    "ExtractionMetadata",
    "ExtractionRequest",
    "ExtractionResult",
    "IExtractionProvider",
    "IItemStore",
    "ILLMProvider",
    "IProductStore",
    "SiteLink",
]
