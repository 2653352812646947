"""Tests for Fresh / Today / Trending section composition."""

from datetime import datetime, timedelta, timezone

from kivaw_feed.core.models import FeedPool, RawContentItem
from kivaw_feed.core.sections import SeenIds, build_sections

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _item(item_id: str, hours_ago: float, score=None, **kwargs) -> RawContentItem:
    return RawContentItem(
        id=item_id,
        title=kwargs.pop("title", f"Item {item_id}"),
        published_at=(NOW - timedelta(hours=hours_ago)).isoformat(),
        score=score,
        **kwargs,
    )


def _ids(composition, section_id):
    section = composition.section(section_id)
    return [i.id for i in section.items] if section else None


def test_reference_scenario():
    a = _item("a", 1, 5)
    b = _item("b", 1, 9)
    c = _item("c", 30, 7)
    d = _item("d", 30, 3)
    pool = FeedPool(feed=[a, b, c, d], fresh=[a, b], today=[a, b])

    composition = build_sections(pool, NOW)

    assert _ids(composition, "fresh") == ["a", "b"]
    assert composition.section("today") is None
    assert _ids(composition, "trending") == ["c", "d"]
    assert [s.id for s in composition.sections] == ["fresh", "trending"]


def test_section_titles_and_subtitles():
    pool = FeedPool(
        feed=[_item("t", 30)],
        fresh=[_item("f", 1)],
        today=[_item("d", 10)],
    )
    sections = build_sections(pool, NOW).sections
    assert [(s.title, s.subtitle) for s in sections] == [
        ("Fresh", "Last 6 hours"),
        ("Today", "Last 24 hours"),
        ("Trending", "Last 48 hours"),
    ]


def test_no_item_appears_in_two_sections():
    shared = [_item(f"s{i}", 2, score=i) for i in range(5)]
    old = [_item(f"o{i}", 30, score=i) for i in range(5)]
    pool = FeedPool(
        feed=shared + old,
        fresh=shared[:3],
        today=shared + old[:2],  # upstream may overlap with fresh
    )

    composition = build_sections(pool, NOW)

    placed = [i.id for s in composition.sections for i in s.items]
    assert len(placed) == len(set(placed))
    assert set(placed) == set(composition.seen.ids)


def test_fresh_wins_over_today():
    x = _item("x", 3)
    pool = FeedPool(feed=[x], fresh=[x], today=[x, _item("y", 12)])

    composition = build_sections(pool, NOW)

    assert _ids(composition, "fresh") == ["x"]
    assert _ids(composition, "today") == ["y"]


def test_each_section_capped_at_twenty():
    fresh = [_item(f"f{i}", 1) for i in range(30)]
    today = [_item(f"d{i}", 10) for i in range(25)]
    trending = [_item(f"t{i}", 30, score=i) for i in range(40)]
    pool = FeedPool(feed=fresh + today + trending, fresh=fresh, today=today)

    composition = build_sections(pool, NOW)

    for section in composition.sections:
        assert len(section.items) == 20
    assert _ids(composition, "fresh") == [f"f{i}" for i in range(20)]
    assert _ids(composition, "trending")[:3] == ["t39", "t38", "t37"]


def test_cap_applies_after_dedup():
    fresh = [_item(f"f{i}", 1) for i in range(5)]
    today = fresh + [_item(f"d{i}", 10) for i in range(3)]
    pool = FeedPool(feed=[], fresh=fresh, today=today)

    composition = build_sections(pool, NOW, cap=5)

    assert _ids(composition, "today") == ["d0", "d1", "d2"]


def test_trending_only_from_24_to_48_hours_sorted_by_score_stable():
    pool = FeedPool(
        feed=[
            _item("fresh", 1, 100),
            _item("today", 12, 100),
            _item("t1", 30, 5),
            _item("t2", 40, 8),
            _item("t3", 26, 5),
            _item("ancient", 60, 100),
        ],
    )

    composition = build_sections(pool, NOW)

    assert composition.section("fresh") is None
    assert composition.section("today") is None
    assert _ids(composition, "trending") == ["t2", "t1", "t3"]


def test_trending_skips_items_already_in_fresh_or_today():
    c = _item("c", 30, 7)
    pool = FeedPool(feed=[c, _item("e", 30, 1)], fresh=[], today=[c])

    composition = build_sections(pool, NOW)

    assert _ids(composition, "today") == ["c"]
    assert _ids(composition, "trending") == ["e"]


def test_all_sections_empty():
    composition = build_sections(FeedPool(feed=[]), NOW)
    assert composition.sections == []
    assert len(composition.seen) == 0


def test_saved_flags_set_from_saved_ids_and_aliases():
    pool = FeedPool(
        feed=[],
        fresh=[_item("durable-1", 1), _item("feed_items:abc", 1), _item("other", 1)],
    )

    composition = build_sections(
        pool,
        NOW,
        saved_ids=frozenset({"durable-1", "durable-2"}),
        aliases={"feed_items:abc": "durable-2"},
    )

    flags = {i.id: i.is_saved for i in composition.section("fresh").items}
    assert flags == {"durable-1": True, "feed_items:abc": True, "other": False}


def test_display_defaults_for_missing_fields():
    pool = FeedPool(feed=[], fresh=[RawContentItem(id="x", published_at=NOW.isoformat())])
    item = build_sections(pool, NOW).section("fresh").items[0]
    assert item.title == "Untitled"
    assert item.source == "unknown"
    assert item.tags == []


def test_seen_ids_admit_is_pure():
    seen = SeenIds(frozenset({"a"}))
    admitted, after = seen.admit([_item("a", 1), _item("b", 1), _item("b", 1)], cap=5)

    assert [i.id for i in admitted] == ["b"]
    assert after.ids == frozenset({"a", "b"})
    assert seen.ids == frozenset({"a"})
