"""Pydantic request/response schemas for the pageStash API.

Items themselves are returned as :class:`pagestash.models.item.SavedItem`;
the models here cover request bodies and the smaller response envelopes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pagestash.models.product_import import ImportedProduct


class BulkScrapeRequest(BaseModel):
    """A batch of URLs to import, processed in the order given."""

    urls: list[str]


class ScrapeRequest(BaseModel):
    """A single URL to save."""

    url: str = Field(..., min_length=1)


class SummaryUpdateRequest(BaseModel):
    """A user-supplied (or edited) summary to tag and save."""

    summary: str = Field(..., min_length=1, max_length=20_000)


class MapSiteRequest(BaseModel):
    url: str = Field(..., min_length=1)
    search: str | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


class SearchWebRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    limit: int | None = Field(default=None, ge=1, le=100)
    location: str | None = None
    tbs: str | None = Field(default=None, description="Time filter, e.g. 'qdr:w' for past week")


class LinkSchema(BaseModel):
    url: str
    title: str | None = None
    description: str | None = None


class LinksResponse(BaseModel):
    """Links found by a site map or web search."""

    links: list[LinkSchema] = Field(default_factory=list)


class BatchStatusResponse(BaseModel):
    """Latest snapshot of a bulk import."""

    batch_id: str
    total: int
    completed: int
    succeeded: int
    failed: int
    last_url: str | None = None
    finished: bool = False
    error: str | None = None
    item_ids: list[str] = Field(default_factory=list)


class ImportJsonRequest(BaseModel):
    """A catalogue JSON document pasted together with its listing URL."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    document: str = Field(..., alias="json", min_length=1, max_length=5_000_000)


class ImportJsonResponse(BaseModel):
    success: bool = True
    imported: int


class ProductSchema(BaseModel):
    """An imported product; ``price`` is formatted with two decimals."""

    id: str
    product_id: str
    name: str
    price: str
    image_url: str | None = None
    link: str

    @classmethod
    def from_product(cls, product: ImportedProduct) -> ProductSchema:
        return cls(
            id=product.id,
            product_id=product.product_id,
            name=product.name,
            price=product.display_price,
            image_url=product.image_url,
            link=product.link,
        )


class ProductsResponse(BaseModel):
    products: list[ProductSchema] = Field(default_factory=list)


class DeleteProductsResponse(BaseModel):
    success: bool = True
    deleted: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
