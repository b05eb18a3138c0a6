"""Click commands for running and inspecting kubecache.

Options given on the command line override the matching KUBECACHE_*
environment variables.
"""

from __future__ import annotations

import asyncio

import click

from kubecache.cache.kinds import supported_kinds
from kubecache.config import load_config, parse_kinds, validate_log_level
from kubecache.models.config import KubeCacheConfig


def _kinds_option(_ctx: click.Context, _param: click.Parameter, value: str | None) -> list[str] | None:
    if value is None:
        return None
    try:
        return parse_kinds(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def build_config(
    cache: list[str] | None = None,
    port: int | None = None,
    log_level: str | None = None,
    context: str | None = None,
) -> KubeCacheConfig:
    """Load environment configuration and apply command-line overrides."""
    config = load_config()
    if cache is not None:
        config.cache.kinds = cache
    if port is not None:
        config.api.port = port
    if log_level is not None:
        config.log.level = validate_log_level(log_level)
    if context is not None:
        config.kube.context = context
    return config


@click.group()
@click.version_option(package_name="kubecache")
def cli() -> None:
    """Serve Kubernetes resources from a continuously synchronized cache."""


@cli.command()
@click.option(
    "--cache",
    callback=_kinds_option,
    default=None,
    help="Comma-delimited list of resource kinds to cache (e.g. namespaces,ingresses).",
)
@click.option("--port", type=click.IntRange(1024, 65535), default=None, help="REST API port.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
)
@click.option("--context", default=None, help="kubeconfig context to use outside a cluster.")
def serve(cache: list[str] | None, port: int | None, log_level: str | None, context: str | None) -> None:
    """Sync the configured kinds and serve them over HTTP."""
    from kubecache.app import main

    config = build_config(cache=cache, port=port, log_level=log_level, context=context)
    asyncio.run(main(config))


@cli.command()
def kinds() -> None:
    """List the resource kinds kubecache can cache."""
    for kind in supported_kinds():
        click.echo(kind)
