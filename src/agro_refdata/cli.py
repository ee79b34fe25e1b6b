"""CLI for the reference-data access layer.

Commands:
- resources: List the configured reference resources
- list: List every (or only active) item of a resource
- get: Fetch one item by id
- search: Search a resource with term, status, paging and ordering
- can-remove: Ask whether an item can be removed
- activate / deactivate / remove: Mutate an item (never retried)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Annotated, Protocol

import typer
from rich import print as rprint
from rich import print_json

from . import __version__
from .application.reference_client import ReferenceClientRegistry
from .config import ClientConfig
from .domain.resources import SearchParams
from .exceptions import AccessLayerError, ReferenceDataError


class RegistryBuilder(Protocol):
    """Protocol for constructing the client registry used by CLI commands."""

    def __call__(self, *, config: ClientConfig) -> ReferenceClientRegistry:
        """Build a registry for one CLI invocation."""
        ...


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: ClientConfig
    registry_builder: RegistryBuilder

    @contextmanager
    def registry(self) -> Iterator[ReferenceClientRegistry]:
        registry = self.registry_builder(config=self.config)
        with registry:
            yield registry


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the agro-refdata entry point.")


class InvalidEnvironmentConfigError(typer.BadParameter):
    """Raised when environment configuration cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid environment configuration: {reason}")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _to_jsonable(value: object) -> object:
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


def _report_error(exc: AccessLayerError) -> None:
    if isinstance(exc, ReferenceDataError):
        rprint(f"[red]✗ {exc.message}[/red]")
        rprint(f"  kind={exc.kind.value} severity={exc.severity.value} attempts={exc.attempts}")
    else:
        rprint(f"[red]✗ {exc}[/red]")


def _version_callback(value: bool) -> None:
    if value:
        rprint(f"agro-refdata {__version__}")
        raise typer.Exit()


def _run(state: CliContext, action: Callable[[ReferenceClientRegistry], None]) -> None:
    try:
        with state.registry() as registry:
            action(registry)
    except AccessLayerError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from exc


def create_app(registry_builder: RegistryBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided registry builder."""
    app = typer.Typer(
        add_completion=False,
        help="Reference-data client: cached reads, retried fetches, guarded writes",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        base_url: Annotated[
            str | None,
            typer.Option("--base-url", help="Backend base URL (overrides REFDATA_BASE_URL)"),
        ] = None,
        resources_file: Annotated[
            str | None,
            typer.Option("--resources", help="TOML resource catalogue"),
        ] = None,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the package version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        _ = version
        try:
            env_config = ClientConfig.from_env()
        except ValueError as exc:
            raise InvalidEnvironmentConfigError(str(exc)) from exc
        config = env_config.with_overrides(base_url=base_url, resources_path=resources_file)
        ctx.obj = CliContext(config=config, registry_builder=registry_builder)

    @app.command()
    def resources(ctx: typer.Context) -> None:
        """List the configured reference resources."""

        def action(registry: ReferenceClientRegistry) -> None:
            for resource in registry.resources:
                rprint(
                    f"[bold]{resource.name}[/bold] /{resource.cache_prefix} "
                    f"(ttl={resource.cache_ttl_seconds:g}s, "
                    f"search ttl={resource.search_ttl_seconds:g}s)"
                )

        _run(_get_context(ctx), action)

    @app.command(name="list")
    def list_items(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        active: Annotated[
            bool, typer.Option("--ativos", help="Only active items")
        ] = False,
    ) -> None:
        """List every item (or only active items) of a resource."""

        def action(registry: ReferenceClientRegistry) -> None:
            client = registry.client_for(resource)
            items = client.obter_ativos() if active else client.obter_todos()
            print_json(data=_to_jsonable(items))
            rprint(f"[green]✓ {len(items)} item(s)[/green]")

        _run(_get_context(ctx), action)

    @app.command()
    def get(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        item_id: Annotated[str, typer.Argument(help="Item id")],
    ) -> None:
        """Fetch one item by id."""

        def action(registry: ReferenceClientRegistry) -> None:
            item = registry.client_for(resource).obter_por_id(item_id)
            print_json(data=_to_jsonable(item))

        _run(_get_context(ctx), action)

    @app.command()
    def search(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        termo: Annotated[str | None, typer.Option("--termo", "-t", help="Search term")] = None,
        ativo: Annotated[
            bool | None, typer.Option("--ativo/--inativo", help="Filter by status")
        ] = None,
        pagina: Annotated[int | None, typer.Option("--pagina", min=1)] = None,
        tamanho_pagina: Annotated[int | None, typer.Option("--tamanho-pagina", min=1)] = None,
        ordenacao: Annotated[str | None, typer.Option("--ordenacao")] = None,
    ) -> None:
        """Search a resource."""

        def action(registry: ReferenceClientRegistry) -> None:
            result = registry.client_for(resource).buscar(
                SearchParams(
                    termo=termo,
                    ativo=ativo,
                    pagina=pagina,
                    tamanho_pagina=tamanho_pagina,
                    ordenacao=ordenacao,
                )
            )
            print_json(data=_to_jsonable(result.items))
            rprint(f"[green]✓ {len(result.items)} of {result.total} item(s)[/green]")

        _run(_get_context(ctx), action)

    @app.command(name="can-remove")
    def can_remove(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        item_id: Annotated[str, typer.Argument(help="Item id")],
    ) -> None:
        """Ask whether an item can be removed."""

        def action(registry: ReferenceClientRegistry) -> None:
            allowed = registry.client_for(resource).pode_remover(item_id)
            if allowed:
                rprint(f"[green]✓ {resource} {item_id} can be removed[/green]")
            else:
                rprint(f"[yellow]{resource} {item_id} is referenced and cannot be removed[/yellow]")

        _run(_get_context(ctx), action)

    @app.command()
    def activate(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        item_id: Annotated[str, typer.Argument(help="Item id")],
    ) -> None:
        """Activate an item."""

        def action(registry: ReferenceClientRegistry) -> None:
            registry.client_for(resource).ativar(item_id)
            rprint(f"[green]✓ Activated {resource} {item_id}[/green]")

        _run(_get_context(ctx), action)

    @app.command()
    def deactivate(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        item_id: Annotated[str, typer.Argument(help="Item id")],
    ) -> None:
        """Deactivate an item."""

        def action(registry: ReferenceClientRegistry) -> None:
            registry.client_for(resource).desativar(item_id)
            rprint(f"[green]✓ Deactivated {resource} {item_id}[/green]")

        _run(_get_context(ctx), action)

    @app.command()
    def remove(
        ctx: typer.Context,
        resource: Annotated[str, typer.Argument(help="Resource name")],
        item_id: Annotated[str, typer.Argument(help="Item id")],
    ) -> None:
        """Remove an item."""

        def action(registry: ReferenceClientRegistry) -> None:
            registry.client_for(resource).remover(item_id)
            rprint(f"[green]✓ Removed {resource} {item_id}[/green]")

        _run(_get_context(ctx), action)

    return app
