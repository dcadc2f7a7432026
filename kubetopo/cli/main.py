"""Click commands for computing topologies from snapshot files.

A snapshot is a JSON file holding either a list of Kubernetes objects or a
``{"items": [...]}`` list document as printed by ``kubectl get -o json``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import replace
from typing import IO, Any

import click

from kubetopo.config import load_config
from kubetopo.errors import TopologyValidationError
from kubetopo.graph.builder import build_graph
from kubetopo.graph.filters import TopologyFilters, filter_graph
from kubetopo.graph.models import NodeStatus
from kubetopo.layout.engine import layout_topology
from kubetopo.models.config import LayoutConfig, LayoutDirection, LayoutStrategy, TopologyConfig
from kubetopo.observability.logging import setup_logging
from kubetopo.policy.connectivity import build_network_topology

_STRATEGIES = [s.value for s in LayoutStrategy]
_DIRECTIONS = [d.value for d in LayoutDirection]


def load_snapshot(stream: IO[str]) -> list[dict[str, Any]]:
    """Read a snapshot document and return its objects."""
    try:
        document = json.load(stream)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"snapshot is not valid JSON: {exc}") from exc
    if isinstance(document, dict) and isinstance(document.get("items"), list):
        document = document["items"]
    if not isinstance(document, list) or not all(isinstance(item, dict) for item in document):
        raise click.BadParameter("snapshot must be a list of objects or a document with an 'items' list")
    return document


def _emit(payload: dict[str, Any], pretty: bool) -> None:
    click.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=False))


def _fail(exc: TopologyValidationError) -> None:
    click.echo(json.dumps(exc.to_dict()), err=True)
    sys.exit(2)


def _layout_config(config: TopologyConfig, direction: str | None) -> LayoutConfig:
    if direction is None:
        return config.layout
    return replace(config.layout, direction=LayoutDirection(direction))


@click.group()
@click.version_option(package_name="kubetopo")
@click.option("--log-level", default=None, help="Overrides KUBETOPO_LOG_LEVEL.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Kubernetes topology graphs, connectivity and layouts."""
    config = load_config()
    # Data quality warnings are part of the JSON output; log only errors by default.
    setup_logging(log_level or "error")
    ctx.obj = config


@cli.command()
@click.argument("snapshot", type=click.File("r"))
@click.option("-n", "--namespace", default=None, help="Only resources in this namespace (plus cluster-scoped ones).")
@click.option("--layout", "strategy", type=click.Choice(_STRATEGIES), default=None, help="Layout strategy.")
@click.option("--direction", type=click.Choice(_DIRECTIONS), default=None, help="Hierarchical layout direction.")
@click.option("--cluster-name", default=None, help="Cluster name recorded in the graph metadata.")
@click.option("--kind", "kinds", multiple=True, help="Keep only nodes of this kind (repeatable).")
@click.option(
    "--status",
    "statuses",
    type=click.Choice([s.value for s in NodeStatus]),
    multiple=True,
    help="Keep only nodes with this status (repeatable).",
)
@click.option("--search", default="", help="Case-insensitive substring of node name or labels.")
@click.option("--pretty/--compact", default=True, help="Indent the JSON output.")
@click.pass_obj
def graph(
    config: TopologyConfig,
    snapshot: IO[str],
    namespace: str | None,
    strategy: str | None,
    direction: str | None,
    cluster_name: str | None,
    kinds: tuple[str, ...],
    statuses: tuple[str, ...],
    search: str,
    pretty: bool,
) -> None:
    """Build the resource graph for SNAPSHOT and print it as JSON."""
    resources = load_snapshot(snapshot)
    try:
        topology = build_graph(resources, namespace, cluster_name=cluster_name or config.cluster_name)
        if kinds or statuses or search:
            topology = filter_graph(
                topology,
                TopologyFilters.create(kinds=kinds, statuses=statuses, search=search),
            )
        topology = layout_topology(topology, strategy, _layout_config(config, direction))
    except TopologyValidationError as exc:
        _fail(exc)
        return
    _emit(topology.to_dict(), pretty)


@cli.command()
@click.argument("snapshot", type=click.File("r"))
@click.option("-n", "--namespace", default=None, help="Only pairs with at least one pod in this namespace.")
@click.option("--layout", "strategy", type=click.Choice(_STRATEGIES), default=None, help="Layout strategy.")
@click.option("--direction", type=click.Choice(_DIRECTIONS), default=None, help="Hierarchical layout direction.")
@click.option("--pretty/--compact", default=True, help="Indent the JSON output.")
@click.pass_obj
def network(
    config: TopologyConfig,
    snapshot: IO[str],
    namespace: str | None,
    strategy: str | None,
    direction: str | None,
    pretty: bool,
) -> None:
    """Compute pod connectivity under the NetworkPolicies in SNAPSHOT."""
    objects = load_snapshot(snapshot)
    by_kind: dict[str, list[dict[str, Any]]] = {"Pod": [], "Service": [], "NetworkPolicy": [], "Namespace": []}
    for obj in objects:
        bucket = by_kind.get(str(obj.get("kind", "")))
        if bucket is not None:
            bucket.append(obj)
    try:
        topology = build_network_topology(
            by_kind["Pod"],
            by_kind["Service"],
            by_kind["NetworkPolicy"],
            namespace,
            namespaces=by_kind["Namespace"],
        )
        topology = layout_topology(topology, strategy, _layout_config(config, direction))
    except TopologyValidationError as exc:
        _fail(exc)
        return
    _emit(topology.to_dict(), pretty)


@cli.command()
@click.option("--port", type=int, default=None, help="Overrides KUBETOPO_API_PORT.")
@click.option("--log-level", default=None, help="Overrides KUBETOPO_LOG_LEVEL.")
@click.pass_obj
def serve(config: TopologyConfig, port: int | None, log_level: str | None) -> None:
    """Run the REST API server until SIGINT/SIGTERM."""
    from kubetopo.app import main

    if port is not None:
        config.api.port = port
    if log_level is not None:
        config.log.level = log_level
    asyncio.run(main(config))
