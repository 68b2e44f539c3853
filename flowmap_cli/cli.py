"""Typer-based CLI for flowmap architecture graph analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .complexity import ComplexityAnalyzer
from .config import CONFIG_FILE, FlowMapConfig, load_config, save_config
from .diff_engine import GraphDiffEngine
from .errors import ConfigurationError, SnapshotError
from .extractor import SubgraphExtractor
from .models import GraphDiff
from .storage import GraphStore, load_snapshot, save_snapshot

console = Console()

app = typer.Typer(
    help="🗺️  flowmap: extract, diff and score architecture graphs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"flowmap v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """flowmap: structural analysis of architecture snapshots."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(path: Path) -> GraphStore:
    try:
        return load_snapshot(path)
    except SnapshotError as exc:
        raise typer.BadParameter(exc.message) from exc


def _config(path: Optional[Path]) -> FlowMapConfig:
    try:
        return load_config(path)
    except ConfigurationError as exc:
        raise typer.BadParameter(exc.message) from exc


_CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to a flowmap config.toml.")


@app.command("stats")
def stats(
    snapshot: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph snapshot (JSON)."),
):
    """Show node and edge counts per type."""
    store = _load(snapshot)

    table = Table(title=f"{snapshot.name}", show_header=True)
    table.add_column("Node type", style="cyan")
    table.add_column("Count", justify="right")
    for tag, count in sorted(store.type_counts().items()):
        table.add_row(tag, str(count))
    console.print(table)

    typer.echo(f"Nodes: {store.node_count} | Edges: {store.edge_count}")
    dangling = store.dangling_edges()
    if dangling:
        typer.echo(f"Dangling edges: {len(dangling)}")


@app.command("extract")
def extract(
    snapshot: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph snapshot (JSON)."),
    selector: str = typer.Argument(..., help="Endpoint path, e.g. /api/v1/users/123."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the subgraph snapshot here."),
    config_path: Optional[Path] = _CONFIG_OPTION,
):
    """Extract the subgraph connected to one endpoint."""
    store = _load(snapshot)
    result = SubgraphExtractor(_config(config_path)).extract(store, selector)

    if not result.found:
        typer.echo(f"❌ No route found for endpoint: {selector}", err=True)
        raise typer.Exit(code=1)

    route = result.route
    typer.echo(f"Route: {route.name} ({result.match.kind.value} match)")
    typer.echo(f"Nodes: {result.graph.node_count} | Edges: {result.graph.edge_count}")
    for node in result.graph.get_nodes():
        typer.echo(f"- [{node.node_type}] {node.name}")

    if output is not None:
        save_snapshot(result.graph, output)
        typer.echo(f"Wrote subgraph to {output}")


@app.command("diff")
def diff(
    before: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot before the change."),
    after: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot after the change."),
    as_json: bool = typer.Option(False, "--json", help="Print the diff record as JSON."),
    config_path: Optional[Path] = _CONFIG_OPTION,
):
    """Compare two snapshots and report structural changes."""
    engine = GraphDiffEngine(_config(config_path))
    result = engine.diff(_load(before), _load(after))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    _print_diff(result)


def _print_diff(result: GraphDiff) -> None:
    if result.is_empty:
        console.print("[green]✓[/green] No structural changes.")

    changes = Table(title="Changes", show_header=True)
    changes.add_column("Change", style="cyan", width=10)
    changes.add_column("Kind", width=6)
    changes.add_column("Item", min_width=30)
    for node in result.added_nodes:
        changes.add_row("[green]added[/green]", "node", f"{node.name} ({node.node_type})")
    for node in result.removed_nodes:
        changes.add_row("[red]removed[/red]", "node", f"{node.name} ({node.node_type})")
    for mod in result.modified_nodes:
        details = ", ".join(_describe_change(c) for c in mod.changes) or "attributes"
        changes.add_row("[yellow]modified[/yellow]", "node", f"{mod.after.name}: {details}")
    for edge in result.added_edges:
        changes.add_row("[green]added[/green]", "edge", f"{edge.src} --{edge.edge_type}--> {edge.dst}")
    for edge in result.removed_edges:
        changes.add_row("[red]removed[/red]", "edge", f"{edge.src} --{edge.edge_type}--> {edge.dst}")
    if not result.is_empty:
        console.print(changes)

    metrics = result.metrics_change
    table = Table(title="Metrics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Change", justify="right")
    table.add_row("Nodes", str(metrics.nodes.before), str(metrics.nodes.after), f"{metrics.nodes.change:+d}")
    table.add_row("Edges", str(metrics.edges.before), str(metrics.edges.after), f"{metrics.edges.change:+d}")
    table.add_row(
        "Complexity",
        str(metrics.complexity.before),
        str(metrics.complexity.after),
        f"{metrics.complexity.change:+d} ({metrics.complexity.percentage:+.2f}%)",
    )
    console.print(table)

    typer.echo(f"Total changes: {result.summary.total_changes}")
    if result.summary.breaking_changes:
        console.print(
            Panel(
                "\n".join(f"  • {item}" for item in result.summary.breaking_changes),
                title="[bold red]⚠️  Breaking Changes[/bold red]",
                border_style="red",
            )
        )
    if result.summary.recommendations:
        console.print(
            Panel(
                "\n".join(f"  • {rec}" for rec in result.summary.recommendations),
                title="[bold yellow]📋 Recommendations[/bold yellow]",
                border_style="yellow",
            )
        )


def _describe_change(change: dict) -> str:
    if change["type"] == "name":
        return f"renamed {change['before']} → {change['after']}"
    if change["type"] == "associations_added":
        return f"+associations {', '.join(change['items'])}"
    if change["type"] == "associations_removed":
        return f"-associations {', '.join(change['items'])}"
    return change["type"]


@app.command("analyze")
def analyze(
    snapshot: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph snapshot (JSON)."),
    top: Optional[int] = typer.Option(None, "--top", "-n", min=1, max=50, help="Entries per ranking."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config_path: Optional[Path] = _CONFIG_OPTION,
):
    """Score connectivity, list dependencies and detect cycles."""
    analyzer = ComplexityAnalyzer(_load(snapshot), _config(config_path))
    report = analyzer.report(top_n=top)

    if as_json:
        typer.echo(json.dumps(report, indent=2))
        return

    overview = report["overview"]
    typer.echo(f"Nodes: {overview['total_nodes']} | Edges: {overview['total_edges']}")

    table = Table(title="Most Connected Models", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Model", style="cyan")
    table.add_column("Connections", justify="right")
    for index, item in enumerate(report["most_connected_models"], start=1):
        table.add_row(str(index), item["name"], str(item["score"]))
    console.print(table)

    deps = Table(title="Model Dependencies", show_header=True)
    deps.add_column("Model", style="cyan")
    deps.add_column("Outgoing")
    deps.add_column("Incoming")
    for item in report["model_dependencies"]:
        deps.add_row(
            item["name"],
            f"{item['outgoing']} ({', '.join(item['outgoing_types'])})",
            f"{item['incoming']} ({', '.join(item['incoming_types'])})",
        )
    console.print(deps)

    cycles = report["circular_dependencies"]
    if cycles:
        console.print(f"\n[bold yellow]⚠️  Circular Dependencies Detected: {len(cycles)}[/bold yellow]")
        for cycle in cycles:
            console.print(f"  • {' → '.join(cycle)}")
    else:
        console.print("\n[green]✓[/green] No circular dependencies detected")

    if report["god_objects"]:
        console.print("\n[bold yellow]⚠️  Potential God Objects[/bold yellow]")
        for item in report["god_objects"]:
            console.print(f"  • {item['name']} has {item['score']} connections")

    if report["recommendations"]:
        console.print(
            Panel(
                "\n".join(f"  • {rec}" for rec in report["recommendations"]),
                title="[bold yellow]📋 Recommendations[/bold yellow]",
                border_style="yellow",
            )
        )


@app.command("show-config")
def show_config(config_path: Optional[Path] = _CONFIG_OPTION):
    """Print the effective analysis configuration."""
    cfg = _config(config_path)
    typer.echo(f"# {config_path or CONFIG_FILE}")
    for key, value in cfg.to_dict().items():
        typer.echo(f"{key} = {value}")


@app.command("init-config")
def init_config(
    config_path: Optional[Path] = _CONFIG_OPTION,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing [analysis] section."),
):
    """Write the default analysis configuration to config.toml."""
    target = config_path or CONFIG_FILE
    if target.exists() and not force:
        typer.echo(f"Config already exists at {target}. Use --force to overwrite.", err=True)
        raise typer.Exit(code=1)
    try:
        written = save_config(FlowMapConfig(), target)
    except ConfigurationError as exc:
        raise typer.BadParameter(exc.message) from exc
    typer.echo(f"Wrote default config to {written}")


if __name__ == "__main__":
    app()
