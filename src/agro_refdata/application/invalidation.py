"""Cache invalidation triggered by successful mutations."""

from __future__ import annotations

import logging

from ..domain.resources import ResourceDescriptor
from ..observability import get_logger
from ..protocols import Cache


class CacheInvalidator:
    """Drops cache entries a mutation may have made stale."""

    def __init__(self, cache: Cache, *, logger: logging.Logger | None = None) -> None:
        self.cache = cache
        self.logger = logger or get_logger("agro_refdata.application.invalidation")

    def invalidate_item(self, resource: ResourceDescriptor, item_id: object) -> int:
        return self.cache.invalidate(resource.item_key(item_id), prefix=False)

    def invalidate_family(self, resource: ResourceDescriptor, item_id: object | None = None) -> int:
        """Drop the item key (if any), the list keys and every search of the resource."""
        removed = 0
        if item_id is not None:
            removed += self.invalidate_item(resource, item_id)
        removed += self.cache.invalidate(resource.all_key(), prefix=False)
        removed += self.cache.invalidate(resource.active_key(), prefix=False)
        removed += self.cache.invalidate(resource.search_prefix())
        self.logger.info(
            "Invalidated %s cache entries for %s (item=%s)", removed, resource.name, item_id
        )
        return removed

    def invalidate_resource(self, resource: ResourceDescriptor) -> int:
        """Drop every cache entry under the resource prefix."""
        removed = self.cache.invalidate(f"{resource.cache_prefix}:")
        self.logger.info("Cleared %s cache entries for %s", removed, resource.name)
        return removed
