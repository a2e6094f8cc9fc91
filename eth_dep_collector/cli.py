"""
Command-line interface for the Ethereum client dependency collector.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from eth_dep_collector.aggregate import build_output
from eth_dep_collector.cache import clear_cache, get_cache_stats
from eth_dep_collector.canonical import (
    CanonicalMappingError,
    load_canonical_groups,
    set_canonical_groups,
)
from eth_dep_collector.clients import select_clients
from eth_dep_collector.collectors import run_collection
from eth_dep_collector.config import (
    get_canonical_mappings_path,
    get_output_path,
    set_cache_dir,
    set_cache_enabled,
    set_verify_ssl,
)
from eth_dep_collector.github import GitHubSource
from eth_dep_collector.http_client import close_http_client
from eth_dep_collector.models import ClientDescriptor
from eth_dep_collector.network_share import apply_network_shares, fetch_network_shares
from eth_dep_collector.output import load_dataset, refresh_views, write_dataset

# --- Typer App ---
app = typer.Typer(help="Cross-client dependency inventory for Ethereum node software.")
console = Console()


# --- Helper Functions ---


async def _collect_dataset(
    clients: list[ClientDescriptor], host: GitHubSource, live_shares: bool
) -> dict:
    try:
        shares = None
        if live_shares:
            console.print("Fetching live network shares...")
            shares = await fetch_network_shares()
            clients = apply_network_shares(clients, shares)

        console.print(f"Collecting {len(clients)} clients...")
        results, failed = await run_collection(clients, host)
    finally:
        await close_http_client()

    console.print(f"\nCollected {len(results)}/{len(clients)} clients")
    return build_output(results, failed, shares)


def _load_or_exit(path: Path) -> dict:
    try:
        return load_dataset(path)
    except FileNotFoundError:
        console.print(f"[yellow]Dataset not found: {path}[/yellow]")
        raise typer.Exit(code=1) from None
    except ValueError as e:
        console.print(f"[red]Invalid dataset: {e}[/red]")
        raise typer.Exit(code=1) from None


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def display_summary(data: dict, top: int = 20) -> None:
    """Print clients, top shared dependencies and ecosystem stats."""
    console.print(f"[bold cyan]Dataset generated at {data.get('generatedAt', '?')}[/bold cyan]")

    clients_table = Table(title="Clients")
    clients_table.add_column("Client", style="cyan", no_wrap=True)
    clients_table.add_column("Layer", justify="center")
    clients_table.add_column("Ecosystem")
    clients_table.add_column("Tag")
    clients_table.add_column("Share", justify="right", style="magenta")
    clients_table.add_column("Prod deps", justify="right")
    for client in data["clients"]:
        tag = client.get("scannedTag", "?")
        if not client.get("tagPinned", True):
            tag = f"[yellow]{tag} (unpinned)[/yellow]"
        share = client.get("elNetworkShare", 0.0) + client.get("clNetworkShare", 0.0)
        clients_table.add_row(
            client["id"],
            client.get("layer", "?"),
            client.get("ecosystem", "?"),
            tag,
            _pct(share),
            str(len(data["deps"].get(client["id"], []))),
        )
    console.print(clients_table)

    shared = data.get("topSharedDeps", [])[:top]
    if shared:
        shared_table = Table(title=f"Top {len(shared)} Shared Dependencies")
        shared_table.add_column("Dependency", style="cyan")
        shared_table.add_column("Ecosystem")
        shared_table.add_column("Clients", justify="right")
        shared_table.add_column("EL", justify="right", style="magenta")
        shared_table.add_column("CL", justify="right", style="magenta")
        shared_table.add_column("Cross-layer", justify="center")
        for row in shared:
            shared_table.add_row(
                row["name"],
                row["ecosystem"],
                str(len(row["clients"])),
                _pct(row["elCoverage"]),
                _pct(row["clCoverage"]),
                "[green]yes[/green]" if row["isCrossLayer"] else "no",
            )
        console.print(shared_table)

    stats = data.get("ecosystemStats", {})
    if stats:
        eco_table = Table(title="Within-Ecosystem Sharing")
        eco_table.add_column("Ecosystem", style="cyan")
        eco_table.add_column("Clients")
        eco_table.add_column("Total deps", justify="right")
        eco_table.add_column("Shared deps", justify="right", style="green")
        for eco, stat in stats.items():
            eco_table.add_row(
                eco, ", ".join(stat["clients"]), str(stat["totalDeps"]), str(stat["sharedDeps"])
            )
        console.print(eco_table)

    failed = data.get("failedClients", [])
    if failed:
        console.print(f"\n[red]{len(failed)} client(s) failed:[/red]")
        for item in failed:
            console.print(f"  [red]{item['id']}[/red]: {escape(item['error'])}")


# --- Commands ---


@app.command()
def collect(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Dataset path (default: data/deps.json).",
    ),
    clients: list[str] | None = typer.Option(
        None,
        "--client",
        "-c",
        help="Collect only these client ids (repeatable). Default: all clients.",
    ),
    live_shares: bool = typer.Option(
        True,
        "--live-shares/--no-live-shares",
        help="Refresh network shares from Ethernodes and Blockprint before aggregating.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        help="Cache directory path (default: ~/.cache/eth-dep-collector).",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Do not read or write the crates.io lookup cache.",
    ),
):
    """Collect dependencies of every client and write the aggregated dataset."""
    set_verify_ssl(not insecure)
    if cache_dir:
        set_cache_dir(cache_dir)
    if no_cache:
        set_cache_enabled(False)

    try:
        set_canonical_groups(load_canonical_groups(strict=True))
    except CanonicalMappingError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    try:
        selected = select_clients(clients)
        host = GitHubSource()
    except ValueError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(code=1) from None

    data = asyncio.run(_collect_dataset(selected, host, live_shares))
    path = write_dataset(data, output or get_output_path())

    cross_layer = sum(1 for entry in data["frequency"].values() if entry["isCrossLayer"])
    console.print(f"\n[green]Output written to {path}[/green]")
    console.print(f"  Unique deps: {len(data['frequency'])}")
    console.print(f"  Cross-layer: {cross_layer}")

    if not data["clients"]:
        console.print("[red]No client was collected successfully.[/red]")
        raise typer.Exit(code=1)


@app.command()
def aggregate(
    dataset: Path = typer.Argument(..., help="Dataset file produced by 'collect'."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the refreshed dataset (default: overwrite the input).",
    ),
    top: int | None = typer.Option(
        None,
        "--top",
        help="Row cap for the top shared view (0 = no cap; default from config).",
    ),
):
    """Recompute the summary views of an existing dataset without fetching."""
    data = _load_or_exit(dataset)
    try:
        refreshed = refresh_views(data, top)
    except (KeyError, ValueError) as e:
        console.print(f"[red]Invalid dataset: {e}[/red]")
        raise typer.Exit(code=1) from None
    path = write_dataset(refreshed, output or dataset)
    console.print(f"[green]Views recomputed: {path}[/green]")


@app.command()
def summary(
    dataset: Path | None = typer.Argument(
        None, help="Dataset file (default: the configured output path)."
    ),
    top: int = typer.Option(20, "--top", "-n", help="Number of shared dependencies to show."),
):
    """Display a dataset as tables."""
    display_summary(_load_or_exit(dataset or get_output_path()), top)


@app.command()
def check_mappings(
    path: Path | None = typer.Argument(
        None, help="Canonical mapping YAML (default: the bundled table)."
    ),
):
    """Validate the canonical group table: every key must belong to one group."""
    path = path or get_canonical_mappings_path()
    try:
        groups = load_canonical_groups(path, strict=True)
    except CanonicalMappingError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    purls = sum(len(g.purls) for g in groups.values())
    names = sum(len(g.native_names) for g in groups.values())
    console.print(
        f"[green]{path}: {len(groups)} groups, {purls} identifiers, "
        f"{names} native names, no conflicts[/green]"
    )


@app.command("clear-cache")
def clear_cache_cmd(
    namespace: str | None = typer.Argument(
        None, help="Cache namespace to clear (e.g. crates-links), or omit for all."
    ),
):
    """Clear the on-disk lookup cache."""
    cleared = clear_cache(namespace)
    console.print(f"[green]Cleared {cleared} cache file(s).[/green]")


@app.command()
def cache_stats():
    """Display cache statistics."""
    stats = get_cache_stats()

    if not stats["exists"]:
        console.print(f"[yellow]Cache directory does not exist: {stats['cache_dir']}[/yellow]")
        return

    console.print("[bold cyan]Cache Statistics[/bold cyan]")
    console.print(f"  Directory: {stats['cache_dir']}")
    console.print(f"  Total entries: {stats['total_entries']}")
    console.print(f"  Valid entries: [green]{stats['valid_entries']}[/green]")

    if stats["namespaces"]:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Namespace", style="cyan")
        table.add_column("Total", justify="right")
        table.add_column("Valid", justify="right", style="green")
        table.add_column("Expired", justify="right", style="yellow")
        for name, ns_stats in stats["namespaces"].items():
            table.add_row(
                name, str(ns_stats["total"]), str(ns_stats["valid"]), str(ns_stats["expired"])
            )
        console.print(table)


if __name__ == "__main__":
    app()
