"""Models for products imported from a pasted catalogue JSON document.

Some storefronts render their listing pages from a search API response
shaped like::

    {"primaryProducts": {"response": {"docs": [
        {"id": "123", "name": "...", "price": 9.5, "imageUrl": "..."}
    ]}}}

A user pastes that document together with the listing URL; every doc
becomes one :class:`ImportedProduct` owned by that user.  Only the fields
above are read; anything else in the document is ignored.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogueDoc(BaseModel):
    """One entry of ``primaryProducts.response.docs``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    price: float
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        # Catalogues disagree on whether ids are numbers or strings.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class _CatalogueResponse(BaseModel):
    docs: list[CatalogueDoc]


class _PrimaryProducts(BaseModel):
    response: _CatalogueResponse


class CatalogueDocument(BaseModel):
    """The part of a pasted catalogue document that is imported."""

    primary_products: _PrimaryProducts = Field(alias="primaryProducts")

    @property
    def docs(self) -> list[CatalogueDoc]:
        return self.primary_products.response.docs


class NewProduct(BaseModel):
    """A product row about to be written; the store assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    price: float
    image_url: str | None = None
    link: str


class ImportedProduct(NewProduct):
    """A stored product, owned by exactly one user."""

    id: str
    user_id: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @property
    def display_price(self) -> str:
        """Price with exactly two decimals, e.g. ``"9.50"``."""
        return f"{self.price:.2f}"
