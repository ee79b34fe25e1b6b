"""Tests for mutation-driven cache invalidation."""

from agro_refdata.application.invalidation import CacheInvalidator
from agro_refdata.domain.resources import ResourceDescriptor, SearchParams
from agro_refdata.infrastructure.cache import TtlCache


def _fill(cache: TtlCache, paises: ResourceDescriptor) -> None:
    cache.set(paises.all_key(), ["all"])
    cache.set(paises.active_key(), ["active"])
    cache.set(paises.item_key(1), "one")
    cache.set(paises.item_key(10), "ten")
    cache.set(paises.search_key(SearchParams(termo="br")), "search")
    cache.set("api/referencias/ufs:all", ["uf"])


def test_family_drops_item_lists_and_searches(
    cache: TtlCache, paises: ResourceDescriptor
) -> None:
    _fill(cache, paises)

    removed = CacheInvalidator(cache).invalidate_family(paises, 1)

    assert removed == 4
    assert sorted(cache.keys()) == sorted([paises.item_key(10), "api/referencias/ufs:all"])


def test_family_without_item_keeps_items(cache: TtlCache, paises: ResourceDescriptor) -> None:
    _fill(cache, paises)

    assert CacheInvalidator(cache).invalidate_family(paises) == 3
    assert cache.has(paises.item_key(1))
    assert cache.has(paises.item_key(10))


def test_single_item_is_matched_exactly(cache: TtlCache, paises: ResourceDescriptor) -> None:
    _fill(cache, paises)

    assert CacheInvalidator(cache).invalidate_item(paises, 1) == 1
    assert cache.has(paises.item_key(10))


def test_resource_invalidation_spares_other_resources(
    cache: TtlCache, paises: ResourceDescriptor
) -> None:
    _fill(cache, paises)

    assert CacheInvalidator(cache).invalidate_resource(paises) == 5
    assert cache.keys() == ["api/referencias/ufs:all"]
