"""Command-line interface for MetaLink."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from metalink import __version__
from metalink.cache.memory import MemoryCacheStore
from metalink.cache.sqlite import SQLiteCacheStore
from metalink.cache.store import CacheStore
from metalink.client import MetaLinkClient
from metalink.config.config import Settings, find_config_file
from metalink.models.result import ExtractionResult
from metalink.observability.logging import configure_logging

console = Console(stderr=True)


def load_settings(config_path: Optional[Path]) -> Settings:
    path = config_path or find_config_file()
    if path is not None:
        return Settings.from_yaml(path)
    return Settings()


def build_cache_store(settings: Settings) -> CacheStore:
    backend = settings.cache_backend
    if backend.backend == "sqlite":
        return SQLiteCacheStore(
            backend.sqlite_path,
            key_prefix=backend.key_prefix,
            default_ttl=settings.client.cache.ttl,
        )
    return MemoryCacheStore(
        key_prefix=backend.key_prefix,
        default_ttl=settings.client.cache.ttl,
        max_entries=backend.max_entries,
    )


def _summary_table(results: List[ExtractionResult]) -> Table:
    table = Table(title="Extraction Results")
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Title", style="magenta", overflow="fold")
    table.add_column("Kind")
    table.add_column("Status")
    for result in results:
        metadata = result.metadata
        if result.is_success:
            status = "[green]ok[/green]" + (" (cached)" if result.diagnostics.cache_hit else "")
        else:
            status = "[red]" + ", ".join(error.code.value for error in result.errors) + "[/red]"
        table.add_row(metadata.resolved_url, metadata.title or "", metadata.kind.value, status)
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """MetaLink - link preview metadata extraction."""
    ctx.ensure_object(dict)
    settings = load_settings(Path(config) if config else None)
    if log_level:
        settings.logging.log_level = log_level
    configure_logging(settings.logging)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--concurrency", default=4, show_default=True, help="Maximum concurrent extractions")
@click.option("--no-cache", is_flag=True, help="Bypass the cache for these requests")
@click.option("--oembed", is_flag=True, help="Fetch discovered oEmbed endpoints")
@click.option("--manifest", is_flag=True, help="Fetch discovered web app manifests")
@click.option("--raw", is_flag=True, help="Include raw meta and link tags")
@click.option(
    "--format",
    "output_format",
    default="json",
    type=click.Choice(["json", "table"]),
    help="Output format",
)
@click.pass_context
def extract(
    ctx: click.Context,
    urls: Tuple[str, ...],
    concurrency: int,
    no_cache: bool,
    oembed: bool,
    manifest: bool,
    raw: bool,
    output_format: str,
) -> None:
    """Extract metadata for one or more URLs."""
    settings: Settings = ctx.obj["settings"]
    extract_options = settings.client.extract.model_copy(
        update={
            "enable_oembed": oembed or settings.client.extract.enable_oembed,
            "enable_manifest": manifest or settings.client.extract.enable_manifest,
            "include_raw_metadata": raw or settings.client.extract.include_raw_metadata,
        }
    )

    async def run_extract() -> List[ExtractionResult]:
        cache_store = build_cache_store(settings) if settings.client.cache.enabled else None
        try:
            async with MetaLinkClient(settings.client, cache_store=cache_store) as client:
                return await client.extract_batch(
                    list(urls),
                    concurrency=concurrency,
                    extract_options=extract_options,
                    skip_cache=no_cache,
                )
        finally:
            if cache_store is not None:
                await cache_store.close()

    try:
        results = asyncio.run(run_extract())
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    if output_format == "table":
        Console().print(_summary_table(results))
    else:
        payload: Any = [result.to_json() for result in results]
        click.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2, ensure_ascii=False))

    if not all(result.is_success for result in results):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.pass_context
def optimize(ctx: click.Context, url: str) -> None:
    """Follow URL's redirects and print the final address."""
    settings: Settings = ctx.obj["settings"]

    async def run_optimize():
        async with MetaLinkClient(settings.client) as client:
            return await client.optimize_url(url)

    result = asyncio.run(run_optimize())
    click.echo(json.dumps(result.to_json(), indent=2))
    if not result.is_ok:
        console.print(f"[red]Redirect resolution failed: {result.error}[/red]")
        sys.exit(1)


@cli.group()
def cache() -> None:
    """Manage the persistent SQLite cache."""


def _sqlite_store(settings: Settings) -> SQLiteCacheStore:
    if settings.cache_backend.backend != "sqlite":
        console.print("[yellow]Cache backend is not sqlite; nothing to manage.[/yellow]")
        sys.exit(1)
    store = build_cache_store(settings)
    assert isinstance(store, SQLiteCacheStore)
    return store


@cache.command()
@click.pass_context
def purge(ctx: click.Context) -> None:
    """Delete expired cache entries."""
    store = _sqlite_store(ctx.obj["settings"])

    async def run_purge():
        try:
            return await store.purge_expired()
        finally:
            await store.close()

    result = asyncio.run(run_purge())
    if not result.ok:
        console.print(f"[red]Purge failed: {result.error}[/red]")
        sys.exit(1)
    console.print(f"[green]Purged {result.purged} expired entries.[/green]")


@cache.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Delete every entry under the configured key prefix."""
    store = _sqlite_store(ctx.obj["settings"])

    async def run_clear():
        try:
            return await store.clear()
        finally:
            await store.close()

    result = asyncio.run(run_clear())
    if not result.ok:
        console.print(f"[red]Clear failed: {result.error}[/red]")
        sys.exit(1)
    console.print("[green]Cache cleared.[/green]")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
