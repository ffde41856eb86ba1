from typing import Any, Dict, Iterable, List, Optional
from shopreco.domain.models.recommendation import Recommendation
import hashlib
import json
import logging

logger = logging.getLogger(__name__)


def _h(params: Dict[str, Any]) -> str:
    """Short stable hash of the request parameters."""
    s = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(s.encode()).hexdigest()


class RecoCacheRepo:
    """
    Redis cache for non-personalized recommendation lists (trending, similar).
    Cache errors are logged and treated as misses; a None client disables caching.
    """
    def __init__(self, redis, key_prefix: str):
        self.cache = redis
        self.prefix = key_prefix

    @property
    def enabled(self) -> bool:
        return self.cache is not None

    def key(self, **params) -> str:
        return f"{self.prefix}:{_h(params)}"

    async def get(self, key: str) -> Optional[List[Recommendation]]:
        if not self.enabled:
            return None
        try:
            raw = await self.cache.get(key)
            if raw:
                return [Recommendation.model_validate(x) for x in json.loads(raw)]
        except Exception as e:
            logger.warning("%s cache get error key=%s err=%s", self.prefix, key, e)
        return None

    async def set(self, key: str, items: Iterable[Recommendation], ttl: int) -> None:
        if not self.enabled:
            return
        payload = json.dumps([i.model_dump() for i in items])
        try:
            await self.cache.set(key, payload, ex=ttl)
            logger.debug("%s cache_set key=%s ttl=%ss bytes=%s", self.prefix, key, ttl, len(payload))
        except Exception as e:
            logger.warning("%s cache set error key=%s err=%s", self.prefix, key, e)
