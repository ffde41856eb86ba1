# shopreco/domain/repositories/product_repo.py

from __future__ import annotations
from typing import List
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from shopreco.domain.models.product import Product

logger = logging.getLogger(__name__)


class ProductRepo:
    """Read-only access to the 'products' collection."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def list_all(self) -> List[Product]:
        """Every product document, in natural order. Documents that do not fit the Product shape are skipped."""
        products: List[Product] = []
        skipped = 0
        async for doc in self.col.find({}, {"_id": 0}):
            try:
                products.append(Product.model_validate(doc))
            except ValidationError as e:
                skipped += 1
                logger.warning("skipping invalid product doc id=%s: %s", doc.get("id"), e.error_count())
        if skipped:
            logger.info("products loaded=%s skipped=%s", len(products), skipped)
        return products
