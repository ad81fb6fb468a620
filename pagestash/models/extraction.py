"""Structured extraction payload models.

A deployment extracts exactly one payload shape, chosen once through
``EXTRACTION_VARIANT``:

    article   -> ArticlePayload   {author, published_at}
    products  -> ProductsPayload  {products: [{title, price, description, url}]}

The two shapes are a tagged union keyed by ``kind`` so the variant is never
guessed from which keys happen to be present in a response.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ExtractionVariant(str, Enum):  # noqa: UP042
    """Which structured payload this deployment asks the scraper for."""

    ARTICLE = "article"
    PRODUCTS = "products"


class Product(BaseModel):
    """One product listed on a scraped page."""

    # Scrapers report prices as "$4.99" or 4.99 depending on the page.
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    title: str | None = None
    price: str | None = None
    description: str | None = None
    url: str | None = None


class ArticlePayload(BaseModel):
    """Author / publish-date payload.

    ``published_at`` is kept as the raw string the page carried; it is
    parsed (or dropped) when the item is persisted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["article"] = "article"
    author: str | None = None
    published_at: str | None = Field(default=None, alias="publishedAt")


class ProductsPayload(BaseModel):
    """Product-list payload."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["products"] = "products"
    products: list[Product]


ExtractedPayload = Annotated[
    ArticlePayload | ProductsPayload,
    Field(discriminator="kind"),
]

_PAYLOAD_ADAPTER: TypeAdapter[ArticlePayload | ProductsPayload] = TypeAdapter(ExtractedPayload)


_ARTICLE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "author": {"type": "string", "description": "Name of the article author"},
        "publishedAt": {
            "type": "string",
            "description": "Publication date of the article, ISO-8601 if possible",
        },
    },
}

_PRODUCTS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "products": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "price": {"type": "string"},
                    "description": {"type": "string"},
                    "url": {"type": "string"},
                },
                "required": ["title"],
            },
        },
    },
    "required": ["products"],
}


def extraction_schema(variant: ExtractionVariant) -> dict[str, Any]:
    """Return the JSON schema sent to the scraper for *variant*."""
    if variant is ExtractionVariant.PRODUCTS:
        return _PRODUCTS_SCHEMA
    return _ARTICLE_SCHEMA


def parse_payload(variant: ExtractionVariant, data: Any) -> ArticlePayload | ProductsPayload:
    """Validate a raw structured-JSON response against *variant*.

    The deployment's variant is stamped on as ``kind`` and the result is
    validated through the tagged union, so a response is never matched
    against the other shape.  A missing (``None``) or non-object payload
    raises ``TypeError``; an object that does not fit the variant's shape
    raises :class:`pydantic.ValidationError`.
    """
    if not isinstance(data, dict):
        raise TypeError(f"structured payload must be an object, got {type(data).__name__}")
    return _PAYLOAD_ADAPTER.validate_python({**data, "kind": variant.value})
