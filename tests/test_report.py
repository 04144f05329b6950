from datetime import datetime, timedelta, timezone

from rich.console import Console

from wikipulse.models import PageRecord
from wikipulse.report import biggest_movers, most_biased, most_edited, most_notable, render_rankings

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW = T0 + timedelta(minutes=10)


def _pages() -> list[PageRecord]:
    fast = PageRecord(id="Fast", title="Fast", edits=50, bytes_changed=10, start=T0,
                      distribution={"Jon": 25, "Ann": 25}, contributors={"Jon", "Ann"})
    big = PageRecord(id="Big", title="Big", edits=10, bytes_changed=5000, start=T0,
                     distribution={"Jon": 10}, contributors={"Jon"}, notability_flags=2)
    quiet = PageRecord(id="Quiet", title="Quiet", edits=0, reverts=3, bytes_changed=-200, start=T0,
                       volatile_flags=1)
    return [quiet, big, fast]


def test_most_edited() -> None:
    assert [p.id for p in most_edited(_pages(), now=NOW)] == ["Fast", "Big", "Quiet"]


def test_biggest_movers() -> None:
    assert [p.id for p in biggest_movers(_pages(), limit=2)] == ["Big", "Fast"]


def test_most_biased() -> None:
    assert [p.id for p in most_biased(_pages())] == ["Big", "Fast", "Quiet"]


def test_most_notable() -> None:
    assert [p.id for p in most_notable(_pages(), limit=2)] == ["Big", "Quiet"]


def test_render_rankings() -> None:
    console = Console(record=True, width=120)
    console.print(render_rankings(_pages(), limit=3, now=NOW))
    text = console.export_text()

    assert "Most edited" in text
    assert "Biggest movers" in text
    assert "+5,000" in text
    assert "Fast" in text


def test_render_empty() -> None:
    console = Console(record=True, width=80)
    console.print(render_rankings([]))
    assert "No active pages" in console.export_text()
