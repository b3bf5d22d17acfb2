"""CLI entrypoint using typer."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
import typer
from rich.console import Console

from cacheaside_client.client import CacheClient
from cacheaside_client.observability import (
    bind_command_context,
    clear_command_context,
    configure_logging,
)
from cacheaside_core.codec import decode_envelope
from cacheaside_core.config.settings import Settings
from cacheaside_core.constants import ENVELOPE_EXPIRE_FIELD, NULL_MARKER
from cacheaside_core.exceptions import CacheAsideError, CacheCodecError

app = typer.Typer(
    name="cacheaside",
    help="Inspect and seed a cache-aside key-value store",
)
console = Console()
logger = structlog.get_logger()

_BACKENDS = ("redis", "disk", "memory")

BackendOption = typer.Option(None, "--backend", help="Store backend: redis, disk or memory")
VerboseOption = typer.Option(False, "-v", "--verbose", help="Enable debug logging")


def _load_settings(command: str, backend: str | None, verbose: bool) -> Settings:
    """Build settings from the environment plus CLI overrides."""
    settings = Settings()
    if backend is not None:
        if backend not in _BACKENDS:
            console.print(f"[red]Error:[/red] unknown backend {backend!r}", style="bold")
            raise typer.Exit(code=1)
        settings.store_backend = backend  # type: ignore[assignment]
    if verbose:
        settings.log_level = "DEBUG"

    configure_logging(settings)
    bind_command_context(command, settings.store_backend)
    return settings


def _parse_json(value_json: str) -> Any:  # noqa: ANN401
    """Parse a JSON value argument or exit with an error."""
    try:
        return json.loads(value_json)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] value is not valid JSON: {e}", style="bold")
        raise typer.Exit(code=1) from e


def _run(settings: Settings, action: Any) -> Any:  # noqa: ANN401
    """Run an async action against a client built from settings."""

    async def _with_client() -> Any:  # noqa: ANN401
        async with CacheClient.from_settings(settings) as client:
            return await action(client)

    try:
        return asyncio.run(_with_client())
    except CacheAsideError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold")
        raise typer.Exit(code=1) from e
    finally:
        clear_command_context()


def describe_entry(raw: str | None, now: datetime) -> list[str]:
    """Human-readable lines describing a stored entry."""
    if raw is None:
        return ["[yellow]absent[/yellow]"]
    if raw == NULL_MARKER:
        return ["[magenta]null marker[/magenta] (cached absence)"]
    try:
        envelope = decode_envelope(raw, Any)  # type: ignore[arg-type]
    except CacheCodecError:
        return ["[green]value[/green] (physical TTL)", raw]

    remaining = envelope.expire_time - now
    if envelope.is_expired(now):
        state = f"[red]expired[/red] {-remaining.total_seconds():.0f}s ago"
    else:
        state = f"[green]fresh[/green] for {remaining.total_seconds():.0f}s"
    return [
        f"[cyan]logical-expiry envelope[/cyan], {state}",
        f"{ENVELOPE_EXPIRE_FIELD}: {envelope.expire_time.isoformat()}",
        json.dumps(envelope.data),
    ]


@app.command()
def inspect(
    key: str = typer.Argument(..., help="Full cache key, e.g. cache:shop:1"),
    backend: str | None = BackendOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show what is stored under a key."""
    settings = _load_settings("inspect", backend, verbose)

    async def _action(client: CacheClient) -> str | None:
        return await client.store.get(key)

    raw = _run(settings, _action)
    console.print(f"[bold]{key}[/bold]")
    for line in describe_entry(raw, datetime.now(UTC)):
        console.print(f"  {line}", highlight=False)


@app.command()
def warm(
    key: str = typer.Argument(..., help="Full cache key"),
    value_json: str = typer.Argument(..., help="Value as JSON"),
    ttl_seconds: int = typer.Option(1800, "--ttl-seconds", min=1, help="Logical expiry window"),
    backend: str | None = BackendOption,
    verbose: bool = VerboseOption,
) -> None:
    """Pre-warm a logical-expiry entry."""
    settings = _load_settings("warm", backend, verbose)
    value = _parse_json(value_json)

    async def _action(client: CacheClient) -> None:
        await client.write_with_logical_expiry(key, value, timedelta(seconds=ttl_seconds))

    _run(settings, _action)
    logger.info("cache_warmed", key=key, ttl_seconds=ttl_seconds)
    console.print(f"[bold green]Warmed[/bold green] {key} (fresh for {ttl_seconds}s)")


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Full cache key"),
    value_json: str = typer.Argument(..., help="Value as JSON"),
    ttl_seconds: int = typer.Option(1800, "--ttl-seconds", min=1, help="Physical TTL"),
    backend: str | None = BackendOption,
    verbose: bool = VerboseOption,
) -> None:
    """Write a plain entry with a physical TTL."""
    settings = _load_settings("set", backend, verbose)
    value = _parse_json(value_json)

    async def _action(client: CacheClient) -> None:
        await client.write(key, value, timedelta(seconds=ttl_seconds))

    _run(settings, _action)
    console.print(f"[bold green]Stored[/bold green] {key} (expires in {ttl_seconds}s)")


@app.command()
def evict(
    key: str = typer.Argument(..., help="Full cache key"),
    backend: str | None = BackendOption,
    verbose: bool = VerboseOption,
) -> None:
    """Delete a cached entry."""
    settings = _load_settings("evict", backend, verbose)

    async def _action(client: CacheClient) -> None:
        await client.delete(key)

    _run(settings, _action)
    console.print(f"[bold]Evicted[/bold] {key}")


@app.command()
def version() -> None:
    """Show version."""
    console.print("cacheaside v0.1.0")


if __name__ == "__main__":
    app()
