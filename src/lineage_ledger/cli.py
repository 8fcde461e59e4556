"""CLI interface for Lineage Ledger."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from .errors import LedgerError
from .models.node_id import make_node_id, short_hash
from .models.store import ChildrenMode

app = typer.Typer(
    name="lineage-ledger",
    help="Versioned family tree views over a paginated ledger",
    add_completion=False,
)
console = Console()


def get_config(rpc_url: str | None = None):
    """Load configuration from environment (and .env)."""
    from dotenv import load_dotenv

    from .config import TreeConfig
    from .logging import configure_logging

    load_dotenv()
    configure_logging(json_output=False)

    config = TreeConfig.from_env()
    if rpc_url:
        config = config.with_overrides(rpc_url=rpc_url)
    return config


def _parse_mode(mode: str) -> ChildrenMode:
    try:
        return ChildrenMode(mode.lower())
    except ValueError:
        console.print(f"[red]Invalid mode. Choose from: {[m.value for m in ChildrenMode]}[/red]")
        raise typer.Exit(1)


def _load_session(
    config,
    root_id: str,
    mode: ChildrenMode,
    dedup: bool,
    include_unversioned: bool,
    endorsements: bool,
    depth: int | None,
):
    from .ledger.http import HttpLedgerContract
    from .tree.session import TreeSession

    async def run():
        async with HttpLedgerContract(config) as contract:
            session = TreeSession(contract, config)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Loading tree...", total=None)
                result = await session.load_subtree(
                    root_id,
                    mode,
                    deduplicate_children=dedup,
                    strict_include_unversioned_children=include_unversioned,
                    max_depth=depth,
                )
                if endorsements:
                    progress.update(task, description="Loading endorsements...")
                    await session.load_endorsements(result.node_ids)
                progress.update(task, completed=True)
            return session, result

    try:
        return asyncio.run(run())
    except LedgerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _row_label(session, node_id: str) -> str:
    data = session.nodes_data.get(node_id)
    if data is None:
        return node_id
    label = f"{short_hash(data.person_hash)} [cyan]v{data.version_index}[/cyan]"
    if data.endorsement_count is not None:
        label += f" [yellow]({data.endorsement_count})[/yellow]"
    if data.is_minted:
        label += " [green]NFT[/green]"
    if data.full_name:
        label += f" {data.full_name}"
    if data.tag:
        label += f" [blue]{data.tag}[/blue]"
    return label


@app.command()
def tree(
    root_hash: str = typer.Argument(..., help="Root person hash"),
    version: int = typer.Option(1, "--version", "-V", help="Root version index"),
    mode: str = typer.Option("union", "--mode", "-m", help="Children mode: union or strict"),
    dedup: bool = typer.Option(True, "--dedup/--no-dedup", help="Show one version per child person"),
    include_unversioned: bool = typer.Option(
        False, "--include-unversioned", help="Strict mode: merge version-0 children"
    ),
    endorsements: bool = typer.Option(False, "--endorsements", "-e", help="Load endorsement counts"),
    depth: int = typer.Option(None, "--depth", "-d", help="Maximum depth to crawl"),
    rpc_url: str = typer.Option(None, "--rpc-url", help="Ledger JSON-RPC endpoint"),
):
    """Print the fully expanded descendant tree of a person version."""
    config = get_config(rpc_url)
    children_mode = _parse_mode(mode)
    root_id = make_node_id(root_hash, version)

    session, result = _load_session(
        config, root_id, children_mode, dedup, include_unversioned, endorsements, depth
    )
    rows = session.tree_rows(
        root_id,
        result.node_ids,
        children_mode,
        deduplicate_children=dedup,
        strict_include_unversioned_children=include_unversioned,
    )

    # rows are depth-first, so the open branch per depth is a stack
    branches: list[Tree] = []
    root_tree: Tree | None = None
    for row in rows:
        label = _row_label(session, row.node_id)
        if row.depth == 0:
            root_tree = Tree(label)
            branches = [root_tree]
            continue
        del branches[row.depth:]
        branches.append(branches[row.depth - 1].add(label))

    if root_tree is not None:
        console.print(root_tree)
    console.print(f"[dim]{len(rows)} nodes, depth {result.depth_reached}[/dim]")
    if result.truncated:
        console.print(f"[yellow]Stopped at the node limit ({config.hard_node_limit})[/yellow]")


@app.command()
def export(
    root_hash: str = typer.Argument(..., help="Root person hash"),
    output: Path = typer.Option(..., "--output", "-o", help="Output JSON file"),
    version: int = typer.Option(1, "--version", "-V", help="Root version index"),
    mode: str = typer.Option("union", "--mode", "-m", help="Children mode: union or strict"),
    dedup: bool = typer.Option(True, "--dedup/--no-dedup", help="Show one version per child person"),
    include_unversioned: bool = typer.Option(
        False, "--include-unversioned", help="Strict mode: merge version-0 children"
    ),
    endorsements: bool = typer.Option(False, "--endorsements", "-e", help="Load endorsement counts"),
    depth: int = typer.Option(None, "--depth", "-d", help="Maximum depth to crawl"),
    rpc_url: str = typer.Option(None, "--rpc-url", help="Ledger JSON-RPC endpoint"),
):
    """Export the materialized graph of a person version as JSON."""
    config = get_config(rpc_url)
    children_mode = _parse_mode(mode)
    root_id = make_node_id(root_hash, version)

    session, _ = _load_session(
        config, root_id, children_mode, dedup, include_unversioned, endorsements, depth
    )
    graph = session.view_graph(
        root_id,
        children_mode,
        deduplicate_children=dedup,
        strict_include_unversioned_children=include_unversioned,
    )

    with open(output, "w") as f:
        json.dump(graph.to_dict(), f, indent=2)
    console.print(f"[green]Exported {len(graph.nodes)} nodes to {output}[/green]")


@app.command("invalidate-keys")
def invalidate_keys(
    person_hash: str = typer.Argument(..., help="Person that gained a version"),
    version: int = typer.Option(1, "--version", "-V", help="New version index"),
    father: str = typer.Option(None, "--father", help="Father hash"),
    father_version: int = typer.Option(None, "--father-version", help="Father version index"),
    mother: str = typer.Option(None, "--mother", help="Mother hash"),
    mother_version: int = typer.Option(None, "--mother-version", help="Mother version index"),
):
    """Show which cache keys a new person version invalidates."""
    from .tree.invalidation import PersonVersionAdded, get_invalidate_keys_after_person_version_added

    keys = get_invalidate_keys_after_person_version_added(
        PersonVersionAdded(
            person_hash=person_hash,
            version_index=version,
            father_hash=father,
            father_version_index=father_version,
            mother_hash=mother,
            mother_version_index=mother_version,
        )
    )

    table = Table(title="Invalidated Keys")
    table.add_column("Kind")
    table.add_column("Key")
    for kind, values in (
        ("total versions", keys.total_versions_keys),
        ("union", keys.union_keys),
        ("strict", keys.strict_keys),
        ("strict prefix", keys.strict_prefixes),
    ):
        for value in values:
            table.add_row(kind, value)

    console.print(table)


if __name__ == "__main__":
    app()
