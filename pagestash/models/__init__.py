"""Pydantic models shared across the pipeline, services, and API."""

from pagestash.models.extraction import (
    ArticlePayload,
    ExtractedPayload,
    ExtractionVariant,
    Product,
    ProductsPayload,
    extraction_schema,
    parse_payload,
)
from pagestash.models.item import ItemStatus, ItemUpdate, SavedItem, ScrapeOutcome
from pagestash.models.product_import import CatalogueDocument, ImportedProduct, NewProduct
from pagestash.models.progress import BatchSummary, BulkScrapeProgress, ProgressStatus

__all__ = [
    "ArticlePayload",
    "BatchSummary",
    "BulkScrapeProgress",
    "CatalogueDocument",
    "ExtractedPayload",
    "ExtractionVariant",
    "ImportedProduct",
    "Product",
    "ProductsPayload",
    "ProgressStatus",
    "ItemStatus",
    "ItemUpdate",
    "NewProduct",
    "SavedItem",
    "ScrapeOutcome",
    "extraction_schema",
    "parse_payload",
]
