"""CLI entrypoint for wikipulse."""

import logging
from pathlib import Path

import click
from rich.logging import RichHandler

from . import __version__
from .config import CollectionConfig, load_config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _build_config(ctx: click.Context, **overrides) -> CollectionConfig:
    base: CollectionConfig = ctx.obj["config"]
    try:
        return base.replace(**overrides)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.group()
@click.version_option(__version__, prog_name="wikipulse")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML file with a [collection] table",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str) -> None:
    """wikipulse - live picture of actively edited wiki pages.

    Tracks the recent-changes stream, ranks pages by edit speed, size
    change and author concentration, and forgets pages once they cool down.
    """
    ctx.ensure_object(dict)
    _configure_logging(log_level)

    if config_path is None:
        ctx.obj["config"] = CollectionConfig()
        return
    try:
        ctx.obj["config"] = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid config {config_path}: {e}") from e


def _collection_options(f):
    """Options shared by commands that build a collection."""
    options = [
        click.option("--project", "-p", default=None, help="Server filter, e.g. en.wikipedia.org, *.wikipedia.org or *"),
        click.option("--id", "collection_id", default=None, help="Snapshot key to restore from and persist to"),
        click.option("--snapshot-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for snapshots"),
        click.option("--min-speed", type=float, default=None, help="Edits per minute a page needs to stay tracked"),
        click.option("--max-lifespan", type=float, default=None, help="Minutes a page may stay tracked at most"),
        click.option("--max-inactivity", type=float, default=None, help="Inactivity threshold in minutes"),
        click.option("--min-purge-time", type=float, default=None, help="Minutes since last update before a page can be purged"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@cli.command()
@_collection_options
@click.option("--top", type=int, default=5, show_default=True, help="Rows per ranking")
@click.option("--refresh", type=float, default=10.0, show_default=True, help="Seconds between redraws")
@click.pass_context
def watch(
    ctx: click.Context,
    project: str | None,
    collection_id: str | None,
    snapshot_dir: Path | None,
    min_speed: float | None,
    max_lifespan: float | None,
    max_inactivity: float | None,
    min_purge_time: float | None,
    top: int,
    refresh: float,
) -> None:
    """Track the live recent-changes stream.

    Runs until interrupted (Ctrl+C).

    Examples:
        wikipulse watch
        wikipulse watch --project '*.wikipedia.org' --min-speed 5
        wikipulse watch --id enwiki-live
    """
    from .commands.watch_cmd import run_watch

    config = _build_config(
        ctx,
        project=project,
        collection_id=collection_id,
        snapshot_dir=snapshot_dir,
        min_speed=min_speed,
        max_lifespan=max_lifespan,
        max_inactivity=max_inactivity,
        min_purge_time=min_purge_time,
    )
    run_watch(config, top=top, refresh=refresh)


@cli.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_collection_options
@click.option("--top", type=int, default=5, show_default=True, help="Rows per ranking")
@click.option("--json", "output_json", is_flag=True, help="Output tracked pages as JSON")
@click.option("--sweep", is_flag=True, help="Run one eviction sweep after replaying")
@click.pass_context
def replay(
    ctx: click.Context,
    events_file: Path,
    project: str | None,
    collection_id: str | None,
    snapshot_dir: Path | None,
    min_speed: float | None,
    max_lifespan: float | None,
    max_inactivity: float | None,
    min_purge_time: float | None,
    top: int,
    output_json: bool,
    sweep: bool,
) -> None:
    """Replay recorded raw events from a JSON Lines file.

    Examples:
        wikipulse replay events.jsonl
        wikipulse replay events.jsonl --project '*' --json
    """
    from .commands.watch_cmd import run_replay

    config = _build_config(
        ctx,
        project=project,
        collection_id=collection_id,
        snapshot_dir=snapshot_dir,
        min_speed=min_speed,
        max_lifespan=max_lifespan,
        max_inactivity=max_inactivity,
        min_purge_time=min_purge_time,
    )
    run_replay(events_file, config, top=top, output_json=output_json, sweep=sweep)


# -----------------------------------------------------------------------------
# Snapshot commands
# -----------------------------------------------------------------------------


@cli.group()
@click.option("--snapshot-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for snapshots")
@click.pass_context
def snapshot(ctx: click.Context, snapshot_dir: Path | None) -> None:
    """Inspect persisted collection snapshots."""
    ctx.obj["snapshot_dir"] = snapshot_dir or ctx.obj["config"].snapshot_dir


@snapshot.command("list")
@click.pass_context
def snapshot_list(ctx: click.Context) -> None:
    """List stored snapshots."""
    from .commands.snapshot_cmd import run_snapshot_list

    run_snapshot_list(ctx.obj["snapshot_dir"])


@snapshot.command("show")
@click.argument("key")
@click.option("--top", type=int, default=5, show_default=True, help="Rows per ranking")
@click.option("--json", "output_json", is_flag=True, help="Output raw snapshot JSON")
@click.pass_context
def snapshot_show(ctx: click.Context, key: str, top: int, output_json: bool) -> None:
    """Show rankings for a stored snapshot."""
    from .commands.snapshot_cmd import run_snapshot_show

    try:
        run_snapshot_show(ctx.obj["snapshot_dir"], key, top=top, output_json=output_json)
    except LookupError as e:
        raise click.ClickException(str(e)) from e
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read snapshot '{key}': {e}") from e


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
