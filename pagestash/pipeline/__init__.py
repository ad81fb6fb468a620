"""Bulk import pipeline: per-item lifecycle, orchestrator, progress tracking."""

from pagestash.pipeline.bulk_scraper import BulkScrapeOrchestrator
from pagestash.pipeline.item_lifecycle import (
    ItemProcessor,
    build_extraction_request,
    reduce_extraction,
)
from pagestash.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "BulkScrapeOrchestrator",
    "ItemProcessor",
    "ProgressTracker",
    "build_extraction_request",
    "reduce_extraction",
]
