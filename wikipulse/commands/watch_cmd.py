"""Watch and replay commands - feed a collection and show its rankings."""

from __future__ import annotations

import json
import time
from pathlib import Path

from rich.console import Console
from rich.live import Live

from ..collection import WikiCollection
from ..config import CollectionConfig
from ..report import render_rankings
from ..stream import EventStreamClient


def run_watch(
    config: CollectionConfig,
    *,
    top: int = 5,
    refresh: float = 10.0,
) -> None:
    """
    Track the live recent-changes stream and redraw rankings.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)

    console.print(f"[bold]Watching[/bold] {config.project}")
    console.print(
        f"  min speed: {config.min_speed:g}/min, max lifespan: {config.max_lifespan:g} min, "
        f"max inactivity: {config.max_inactivity:g} min"
    )
    if config.collection_id:
        console.print(f"  Snapshot: {config.snapshot_dir / config.collection_id}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    collection = WikiCollection(config)
    edit_count = 0

    def on_edit(page, _collection) -> None:
        nonlocal edit_count
        edit_count += 1

    def on_error(error: Exception) -> None:
        console.print(f"[yellow]Stream error:[/yellow] {error}", highlight=False)

    collection.on_edit(on_edit)
    client = EventStreamClient(collection.handle_event, on_error=on_error)

    collection.start()
    client.start()
    try:
        with Live(render_rankings([], top), console=console, refresh_per_second=1) as live:
            while True:
                time.sleep(refresh)
                live.update(render_rankings(collection.get_pages(), top))
    except KeyboardInterrupt:
        pass
    finally:
        client.stop()
        collection.close()
        collection.persist()

    console.print()
    console.print(f"[bold]Stopped.[/bold] Applied {edit_count} edits, tracking {len(collection)} pages.")


def run_replay(
    events_path: Path,
    config: CollectionConfig,
    *,
    top: int = 5,
    output_json: bool = False,
    sweep: bool = False,
) -> int:
    """
    Feed a JSON Lines file of raw events through a collection.

    Returns the number of events that changed the collection.
    """
    console = Console()
    collection = WikiCollection(config)

    applied = 0
    skipped = 0
    with events_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            if collection.handle_event(raw):
                applied += 1

    if sweep:
        collection.sweep()
    else:
        collection.persist()

    if output_json:
        console.print_json(collection.to_json())
        return applied

    console.print(render_rankings(collection.get_pages(), top))
    console.print()
    summary = f"Applied {applied} events, tracking {len(collection)} pages."
    if skipped:
        summary += f" Skipped {skipped} unreadable lines."
    console.print(summary, highlight=False)
    return applied
