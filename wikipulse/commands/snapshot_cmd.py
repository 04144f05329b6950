"""Snapshot commands - inspect persisted collections."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..report import render_rankings
from ..snapshot import SnapshotStore, decode_pages


def run_snapshot_list(snapshot_dir: Path) -> int:
    """List stored snapshots. Returns how many were found."""
    console = Console()
    store = SnapshotStore(snapshot_dir)
    keys = store.keys()

    if not keys:
        console.print("[dim]No snapshots found.[/dim]")
        return 0

    table = Table(title=f"Snapshots in {snapshot_dir}")
    table.add_column("Key", style="bold")
    table.add_column("Pages", justify="right")
    for key in keys:
        try:
            blob = store.get(key) or {}
            pages = str(len(blob))
        except (OSError, ValueError):
            pages = "[red]unreadable[/red]"
        table.add_row(key, pages)
    console.print(table)
    return len(keys)


def run_snapshot_show(
    snapshot_dir: Path,
    key: str,
    *,
    top: int = 5,
    output_json: bool = False,
) -> int:
    """
    Show a stored snapshot as rankings or JSON.

    Returns the number of pages in the snapshot.

    Raises:
        LookupError: if no snapshot exists under the key
    """
    console = Console()
    store = SnapshotStore(snapshot_dir)
    blob = store.get(key)
    if blob is None:
        raise LookupError(f"No snapshot named '{key}' in {snapshot_dir}")

    if output_json:
        console.print_json(json.dumps(blob, sort_keys=True))
        return len(blob)

    pages = decode_pages(blob)
    console.print(render_rankings(pages, top))
    return len(pages)
