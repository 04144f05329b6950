"""
Ranking views over a set of pages.

Pure consumers of the read API: each ranking takes a list of records
and returns the top entries without touching the collection.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from rich.console import Group
from rich.table import Table

from .models import PageRecord, utcnow


def _top(
    pages: Iterable[PageRecord],
    key: Callable[[PageRecord], float],
    limit: int,
) -> list[PageRecord]:
    return sorted(pages, key=lambda p: (-key(p), p.id))[:limit]


def most_edited(pages: Iterable[PageRecord], limit: int = 5, now: datetime | None = None) -> list[PageRecord]:
    """Pages with the highest edit velocity."""
    now = now or utcnow()
    return _top(pages, lambda p: p.edit_velocity(now=now), limit)


def biggest_movers(pages: Iterable[PageRecord], limit: int = 5) -> list[PageRecord]:
    """Pages with the largest net size change."""
    return _top(pages, lambda p: p.bytes_changed, limit)


def most_biased(pages: Iterable[PageRecord], limit: int = 5) -> list[PageRecord]:
    """Pages whose edits concentrate on one author."""
    return _top(pages, lambda p: p.bias_score(), limit)


def most_notable(pages: Iterable[PageRecord], limit: int = 5) -> list[PageRecord]:
    """Pages whose edit comments raised the most notability or volatility signals."""
    return _top(pages, lambda p: p.notability_flags + p.volatile_flags, limit)


def _ranking_table(title: str, column: str, rows: list[tuple[PageRecord, str]]) -> Table:
    table = Table(title=title, title_justify="left", expand=False)
    table.add_column("Page", style="bold", overflow="fold")
    table.add_column(column, justify="right")
    table.add_column("Edits", justify="right")
    table.add_column("Editors", justify="right")
    table.add_column("Flags", justify="left")
    for page, value in rows:
        flags = []
        if page.is_new:
            flags.append("new")
        if page.is_protected:
            flags.append("protected")
        if page.volatile_flags:
            flags.append(f"volatile×{page.volatile_flags}")
        if page.notability_flags:
            flags.append(f"notable×{page.notability_flags}")
        table.add_row(
            page.id,
            value,
            str(page.edits),
            str(len(page.contributors) + len(page.anons)),
            ", ".join(flags),
        )
    return table


def render_rankings(pages: list[PageRecord], limit: int = 5, now: datetime | None = None) -> Group:
    """Build the ranking tables for display."""
    now = now or utcnow()
    if not pages:
        empty = Table(title="No active pages", title_justify="left")
        return Group(empty)

    return Group(
        _ranking_table(
            "Most edited",
            "Edits/min",
            [(p, f"{p.edit_velocity(now=now):.2f}") for p in most_edited(pages, limit, now)],
        ),
        _ranking_table(
            "Biggest movers",
            "Bytes",
            [(p, f"{p.bytes_changed:+,}") for p in biggest_movers(pages, limit)],
        ),
        _ranking_table(
            "Most biased",
            "Bias",
            [(p, f"{p.bias_score():.2f}") for p in most_biased(pages, limit)],
        ),
        _ranking_table(
            "Notable",
            "Signals",
            [(p, str(p.notability_flags + p.volatile_flags)) for p in most_notable(pages, limit)],
        ),
    )
