"""Tests for the persisted view-mode preference."""

import json

from kivaw_feed.core.preferences import VIEW_MODE_KEY, LocalState, ViewMode


def test_default_is_feed(tmp_path):
    state = LocalState(tmp_path / "state.json")
    assert state.read_view_mode() is ViewMode.FEED


def test_round_trip_under_stable_key(tmp_path):
    path = tmp_path / "nested" / "state.json"
    state = LocalState(path)

    state.write_view_mode(ViewMode.EXPLORE)

    assert json.loads(path.read_text()) == {"kivaw_page_mode_v1": "explore"}
    assert LocalState(path).read_view_mode() is ViewMode.EXPLORE


def test_unknown_value_falls_back_to_default(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({VIEW_MODE_KEY: "grid"}))

    assert LocalState(path).read_view_mode() is ViewMode.FEED


def test_corrupt_file_falls_back_to_default(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")

    assert LocalState(path).read_view_mode() is ViewMode.FEED


def test_other_keys_preserved(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"theme": "dark"}))

    LocalState(path).write_view_mode(ViewMode.FEED)

    assert json.loads(path.read_text()) == {"theme": "dark", VIEW_MODE_KEY: "feed"}
