"""LLM summaries and tag extraction for saved items.

Layer: Services.
Depends on: ILLMProvider, IItemStore.

Two steps, usable separately or together:

1. :meth:`SummaryService.summarize` asks the LLM for a 2-3 paragraph
   summary of a completed item's content.  Nothing is written.
   :meth:`SummaryService.stream_summary` does the same but hands back the
   text as it is generated.
2. :meth:`SummaryService.save_summary_and_generate_tags` takes a summary
   (generated or user-edited), asks the LLM for 3-5 tags, and persists
   both on the item.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import structlog

from pagestash.interfaces.item_store import IItemStore
from pagestash.interfaces.llm_provider import ILLMProvider
from pagestash.models.item import ItemStatus, ItemUpdate, SavedItem
from pagestash.utils.errors import ItemNotReadyError

logger = structlog.get_logger(logger_name=__name__)

_SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise, informative summaries "
    "of web content. Write 2-3 paragraphs covering the main points and key "
    "takeaways. Use a clear, professional tone."
)

_TAGS_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts relevant tags from content. "
    "Extract 3-5 short, relevant tags that categorize the content. "
    "Return ONLY a comma-separated list of tags, nothing else. "
    "Example: technology, programming, web development"
)

# Keeps very long pages inside the model's context window.
_MAX_CONTENT_CHARS = 24_000

_DEFAULTS: dict[str, Any] = {"temperature": 0.3, "max_tokens": 1200, "max_tags": 5}


def parse_tags(raw: str, max_tags: int = 5) -> list[str]:
    """Split a comma-separated LLM reply into at most *max_tags* tags.

    Tags are trimmed and lower-cased; empty entries are dropped.  Order is
    kept.
    """
    tags = [part.strip().lower() for part in raw.split(",")]
    return [t for t in tags if t][:max_tags]


def _summary_prompt(content: str) -> str:
    return f"Please summarize the following content:\n\n{content}"


class SummaryService:
    """Generates summaries and tags and saves them on items."""

    def __init__(
        self,
        llm: ILLMProvider,
        item_store: IItemStore,
        config: dict[str, Any] | None = None,
    ) -> None:
        self._llm = llm
        self._store = item_store
        cfg = {**_DEFAULTS, **(config or {})}
        self._temperature = float(cfg["temperature"])
        self._max_tokens = int(cfg["max_tokens"])
        self._max_tags = min(int(cfg["max_tags"]), 5)

    async def summarize(self, user_id: str, item_id: str) -> str:
        """Return an LLM summary of the item's content.

        Raises
        ------
        ItemNotFoundError
            If the item is missing or owned by someone else.
        ItemNotReadyError
            If the item is not ``COMPLETED`` or has no content.
        LLMError
            If the completion call fails.
        """
        content = await self._summarizable_content(user_id, item_id)
        summary = await self._llm.complete(
            system_prompt=_SUMMARY_SYSTEM_PROMPT,
            user_prompt=_summary_prompt(content),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        logger.info("summary_generated", item_id=item_id, length=len(summary))
        return summary.strip()

    async def stream_summary(self, user_id: str, item_id: str) -> AsyncIterator[str]:
        """Like :meth:`summarize`, but return the summary as text deltas.

        The item is checked before this returns, so ``ItemNotFoundError``
        and ``ItemNotReadyError`` surface here rather than mid-stream.
        Nothing is saved; the caller posts the final text back through
        :meth:`save_summary_and_generate_tags`.
        """
        content = await self._summarizable_content(user_id, item_id)
        logger.info("summary_stream_started", item_id=item_id)
        return self._llm.stream_complete(
            system_prompt=_SUMMARY_SYSTEM_PROMPT,
            user_prompt=_summary_prompt(content),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

    async def save_summary_and_generate_tags(
        self, user_id: str, item_id: str, summary: str
    ) -> SavedItem:
        """Extract tags from *summary* and persist both on the item."""
        await self._store.find_unique(item_id, user_id)

        reply = await self._llm.complete(
            system_prompt=_TAGS_SYSTEM_PROMPT,
            user_prompt=f"Extract tags from this summary:\n\n{summary}",
            temperature=self._temperature,
            max_tokens=100,
        )
        tags = parse_tags(reply, self._max_tags)

        item = await self._store.update(
            item_id, user_id, ItemUpdate(summary=summary, tags=tags)
        )
        logger.info("summary_saved", item_id=item_id, tags=tags)
        return item

    async def generate_and_save(self, user_id: str, item_id: str) -> SavedItem:
        """Summarize the item, then tag and save the summary."""
        summary = await self.summarize(user_id, item_id)
        return await self.save_summary_and_generate_tags(user_id, item_id, summary)

    async def _summarizable_content(self, user_id: str, item_id: str) -> str:
        item = await self._store.find_unique(item_id, user_id)
        if item.status is not ItemStatus.COMPLETED or not item.content:
            raise ItemNotReadyError(
                f"Item {item_id} is {item.status.value} and has no content to summarize"
            )
        return item.content[:_MAX_CONTENT_CHARS]
