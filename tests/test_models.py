from datetime import datetime, timedelta, timezone

import pytest

from wikipulse.models import PageRecord

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _page(**kwargs) -> PageRecord:
    return PageRecord(id="Foo", title="Foo", start=T0, updated=T0, **kwargs)


def test_age_and_recency_in_minutes() -> None:
    page = _page()
    page.touch(T0 + timedelta(minutes=4))

    now = T0 + timedelta(minutes=10)
    assert page.age(now) == 10
    assert page.recency(now) == 6


def test_updated_never_before_start() -> None:
    page = PageRecord(id="Foo", title="Foo", start=T0, updated=T0 - timedelta(minutes=5))
    assert page.updated == T0

    page.touch(T0 - timedelta(minutes=1))
    assert page.updated == T0


def test_velocity_returns_raw_count_for_young_pages() -> None:
    page = _page(edits=4)
    assert page.edit_velocity(now=T0 + timedelta(seconds=30)) == 4


def test_velocity_divides_by_age() -> None:
    page = _page(edits=10, reverts=5, anon_edits=5)
    now = T0 + timedelta(minutes=5)

    assert page.edit_velocity(now=now) == 2
    assert page.edit_velocity(include_reverts=True, now=now) == 3
    assert page.edit_velocity(include_reverts=True, include_anons=True, now=now) == 4


def test_velocity_zero_edits() -> None:
    page = _page()
    assert page.edit_velocity(now=T0 + timedelta(hours=1)) == 0


def test_bias_score() -> None:
    page = _page(edits=4, distribution={"Jon": 3, "Ann": 1})
    assert page.bias_score() == 0.75


def test_bias_score_without_edits_is_zero() -> None:
    page = _page(reverts=3)
    assert page.bias_score() == 0.0


def test_attribute_counts_anonymous_separately() -> None:
    page = _page()
    page.attribute("Jon", anonymous=False)
    page.attribute("Jon", anonymous=False)
    page.attribute("1.2.3.4", anonymous=True)

    assert page.contributors == {"Jon"}
    assert page.anons == {"1.2.3.4"}
    assert page.anon_edits == 1
    assert page.distribution == {"Jon": 2, "1.2.3.4": 1}


def test_snapshot_is_detached() -> None:
    page = _page()
    page.attribute("Jon", anonymous=False)

    copy = page.snapshot()
    copy.contributors.add("Ann")
    copy.distribution["Jon"] = 99

    assert page.contributors == {"Jon"}
    assert page.distribution == {"Jon": 1}


def test_dict_form_restores_timestamps_from_strings() -> None:
    page = _page(edits=2, bytes_changed=-40, is_new=True)
    page.attribute("Jon", anonymous=False)
    page.touch(T0 + timedelta(minutes=3))

    data = page.to_dict()
    assert data["start"] == T0.isoformat()
    assert data["contributors"] == ["Jon"]

    restored = PageRecord.from_dict(data)
    assert restored == page
    assert isinstance(restored.start, datetime)
    assert restored.updated == T0 + timedelta(minutes=3)


def test_from_dict_uses_defaults_for_missing_fields() -> None:
    restored = PageRecord.from_dict({"title": "Bar", "start": "2024-01-01T12:00:00Z"}, page_id="dewiki/Bar")

    assert restored.id == "dewiki/Bar"
    assert restored.edits == 0
    assert restored.contributors == set()
    assert restored.start == T0
    assert restored.updated == T0


def test_velocity_is_always_a_float() -> None:
    assert isinstance(_page(edits=4).edit_velocity(now=T0), float)
    assert isinstance(_page().edit_velocity(now=T0 + timedelta(hours=1)), float)


@pytest.mark.parametrize(
    "data",
    [
        "garbage",
        ["Foo"],
        {"title": "Foo", "distribution": ["Jon"]},
    ],
)
def test_from_dict_rejects_wrong_shapes(data) -> None:
    with pytest.raises(ValueError):
        PageRecord.from_dict(data, page_id="Foo")
