"""Tests for upstream payload models and explore filters."""

from kivaw_feed.core.models import ExploreFilters, ExplorePage, split_csv


def test_split_csv_accepts_repeated_and_comma_separated():
    assert split_csv(["video,article", " podcast ", "", "a,,b"]) == [
        "video",
        "article",
        "podcast",
        "a",
        "b",
    ]
    assert split_csv(None) == []


def test_filters_parse_normalizes_order_and_duplicates():
    filters = ExploreFilters.parse(["video,article", "video"], ["yt"])

    assert filters == ExploreFilters(kinds=("article", "video"), providers=("yt",))
    assert filters == ExploreFilters.parse(["article", "video"], ["yt"])


def test_empty_filters_send_no_params():
    assert ExploreFilters.parse(None, []).as_params() == {}


def test_explore_page_reads_camel_case_fields():
    page = ExplorePage.model_validate(
        {"items": [{"id": "x", "tags": None}], "nextCursor": None, "hasMore": True}
    )

    assert page.next_cursor is None
    assert page.has_more is True
    assert page.items[0].tags == []
