"""Import products from a pasted catalogue JSON document.

Layer: Services.
Depends on: IProductStore.

The document is parsed and validated in full before anything is written,
so a malformed paste leaves the user's products untouched.  Each product
links back to ``{url}.{product id}.html``, the storefront's product page
pattern relative to the listing URL the user pasted alongside the JSON.
"""

from __future__ import annotations

import json

import structlog
from pydantic import ValidationError

from pagestash.interfaces.product_store import IProductStore
from pagestash.models.product_import import CatalogueDocument, ImportedProduct, NewProduct
from pagestash.utils.errors import AuthenticationError, BatchValidationError
from pagestash.utils.urls import validate_urls

logger = structlog.get_logger(logger_name=__name__)


def product_link(listing_url: str, product_id: str) -> str:
    return f"{listing_url}.{product_id}.html"


def parse_catalogue(raw_json: str) -> CatalogueDocument:
    """Parse *raw_json* into a :class:`CatalogueDocument`.

    Raises
    ------
    BatchValidationError
        If the text is not JSON or lacks ``primaryProducts.response.docs``
        with an id, name and numeric price on every doc.
    """
    try:
        data = json.loads(raw_json)
    except ValueError as exc:
        raise BatchValidationError(f"Pasted text is not valid JSON: {exc}") from exc
    try:
        return CatalogueDocument.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise BatchValidationError(
            f"Unexpected catalogue shape at {location or 'document'}: {first['msg']}"
        ) from exc


class ImportService:
    """Imports, lists and clears a user's catalogue products."""

    def __init__(self, product_store: IProductStore) -> None:
        self._store = product_store

    async def import_json(self, user_id: str, url: str, raw_json: str) -> list[ImportedProduct]:
        """Store one product per catalogue doc and return the stored rows.

        Raises
        ------
        AuthenticationError
            If *user_id* is empty.
        BatchValidationError
            If *url* is not an absolute http(s) URL or *raw_json* is not a
            catalogue document.
        StoreError
            If the rows cannot be written.
        """
        if not user_id:
            raise AuthenticationError("A user id is required to import products")
        (listing_url,) = validate_urls([url])
        document = parse_catalogue(raw_json)

        products = [
            NewProduct(
                product_id=doc.id,
                name=doc.name,
                price=doc.price,
                image_url=doc.image_url,
                link=product_link(listing_url, doc.id),
            )
            for doc in document.docs
        ]
        stored = await self._store.add_many(user_id, products)
        logger.info("catalogue_imported", url=listing_url, products=len(stored))
        return stored

    async def list_products(self, user_id: str) -> list[ImportedProduct]:
        return await self._store.find_many(user_id)

    async def delete_all(self, user_id: str) -> int:
        deleted = await self._store.delete_all(user_id)
        logger.info("catalogue_cleared", products=deleted)
        return deleted
