# shopreco/domain/services/catalog_svc.py
import json
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from shopreco.domain.models.product import Product
from shopreco.domain.models.recommendation import Recommendation
from shopreco.domain.repositories.product_repo import ProductRepo

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Immutable in-memory product collection, loaded once per process."""

    def __init__(self, products: Iterable[Product], source: str = "memory"):
        self._products: Tuple[Product, ...] = tuple(products)
        self._by_id: Dict[str, Product] = {p.id: p for p in self._products}
        self.source = source

    def __len__(self) -> int:
        return len(self._products)

    def all(self) -> List[Product]:
        return list(self._products)

    def get(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)


def resolve_recommendations(recs: Iterable[Recommendation], catalog: ProductCatalog) -> List[Tuple[Recommendation, Product]]:
    """Pair each recommendation with its catalog product; ids the catalog does not know are dropped."""
    resolved: List[Tuple[Recommendation, Product]] = []
    dropped: List[str] = []
    for rec in recs:
        product = catalog.get(rec.product_id)
        if product is None:
            dropped.append(rec.product_id)
            continue
        resolved.append((rec, product))
    if dropped:
        logger.debug("dropped %s recommendations with unknown product ids: %s", len(dropped), dropped[:20])
    return resolved


def load_catalog_file(path: str) -> List[Product]:
    """JSON file holding a list of products (or {"products": [...]})."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("products", [])
    return [Product.model_validate(doc) for doc in raw]


async def load_catalog(db=None, path: Optional[str] = None) -> ProductCatalog:
    """
    Mongo 'products' first (when a database is connected and the collection is
    non-empty), then the JSON file at `path`. An empty catalog is valid: every
    recommendation path then returns empty lists.
    """
    t0 = time.perf_counter()
    if db is not None:
        try:
            products = await ProductRepo(db).list_all()
            if products:
                logger.info("catalog loaded from mongo products=%s time=%.3fs", len(products), time.perf_counter() - t0)
                return ProductCatalog(products, source="mongo")
            logger.info("catalog: mongo products collection is empty")
        except Exception as e:
            logger.warning("catalog: mongo load failed: %s", e)

    if path:
        try:
            products = load_catalog_file(path)
            logger.info("catalog loaded from file=%s products=%s time=%.3fs", path, len(products), time.perf_counter() - t0)
            return ProductCatalog(products, source="file")
        except (OSError, ValueError) as e:
            logger.error("catalog: file load failed path=%s: %s", path, e)

    logger.warning("catalog is empty (no mongo products, CATALOG_PATH=%s)", path)
    return ProductCatalog([], source="empty")
