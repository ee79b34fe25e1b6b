"""Built-in catalogue of the platform's reference resources.

Used when no TOML catalogue is configured. Each entry is plain configuration;
all resources share the same generic client.
"""

from __future__ import annotations

from .domain.resources import ResourceDescriptor

STATIC_TTL_SECONDS = 60 * 60.0


def default_resources(
    *,
    cache_ttl_seconds: float,
    search_ttl_seconds: float,
) -> tuple[ResourceDescriptor, ...]:
    """Return the default reference resources with the given cache policy.

    Geographic and currency tables change rarely and keep the static TTL when
    it is longer than the configured default.
    """
    static_ttl = max(cache_ttl_seconds, STATIC_TTL_SECONDS)
    entries = (
        ("Pais", "api/referencias/paises", static_ttl),
        ("UF", "api/referencias/ufs", static_ttl),
        ("Municipio", "api/referencias/municipios", static_ttl),
        ("Moeda", "api/referencias/moedas", static_ttl),
        ("UnidadeMedida", "api/referencias/unidades-medida", cache_ttl_seconds),
        ("Embalagem", "api/referencias/embalagens", cache_ttl_seconds),
        ("Categoria", "api/referencias/categorias", cache_ttl_seconds),
        ("AtividadeAgropecuaria", "api/referencias/atividades-agropecuarias", cache_ttl_seconds),
    )
    return tuple(
        ResourceDescriptor(
            name=name,
            base_path=path,
            cache_ttl_seconds=ttl,
            search_ttl_seconds=search_ttl_seconds,
        )
        for name, path, ttl in entries
    )
