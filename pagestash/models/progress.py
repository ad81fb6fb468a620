"""Bulk import progress models.

The orchestrator yields one :class:`BulkScrapeProgress` per URL; a consumer
folds the stream into a :class:`BatchSummary` to report the final counts.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProgressStatus(str, Enum):  # noqa: UP042
    """Per-URL outcome as reported on the progress stream."""

    SUCCESS = "success"
    FAILED = "failed"


class BulkScrapeProgress(BaseModel):
    """One progress event: URL number ``completed`` of ``total`` is done."""

    model_config = ConfigDict(frozen=True)

    completed: int = Field(ge=1)
    total: int = Field(ge=1)
    url: str
    status: ProgressStatus
    item_id: str | None = None

    @model_validator(mode="after")
    def _completed_within_total(self) -> BulkScrapeProgress:
        if self.completed > self.total:
            raise ValueError(
                f"completed ({self.completed}) cannot exceed total ({self.total})"
            )
        return self


class BatchSummary(BaseModel):
    """Running aggregate of a progress stream."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    last_completed: int = 0
    failed_urls: list[str] = Field(default_factory=list)

    def record(self, event: BulkScrapeProgress) -> None:
        """Fold one progress event into the counts."""
        self.total = event.total
        self.last_completed = event.completed
        if event.status is ProgressStatus.SUCCESS:
            self.succeeded += 1
        else:
            self.failed += 1
            self.failed_urls.append(event.url)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.last_completed == self.total

    @property
    def message(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed"
