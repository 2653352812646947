"""Tests for the kivaw-feed command line."""

from unittest.mock import AsyncMock, patch

import pytest

from kivaw_feed import main as cli
from kivaw_feed.core.preferences import LocalState, ViewMode


@pytest.fixture(autouse=True)
def _state_path(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("KIVAW_STATE_PATH", str(tmp_path / "state.json"))
    return tmp_path / "state.json"


def test_mode_prints_default(capsys):
    assert cli.main(["mode"]) == 0
    assert capsys.readouterr().out.strip() == "feed"


def test_mode_persists_choice(_state_path, capsys):
    assert cli.main(["mode", "explore"]) == 0
    assert LocalState(_state_path).read_view_mode() is ViewMode.EXPLORE


def test_mode_rejects_unknown_value():
    with pytest.raises(SystemExit):
        cli.main(["mode", "grid"])


def test_no_subcommand_opens_persisted_view(_state_path):
    LocalState(_state_path).write_view_mode(ViewMode.EXPLORE)

    with patch.object(cli, "show_explore", new=AsyncMock(return_value=0)) as explore, patch.object(
        cli, "show_feed", new=AsyncMock(return_value=0)
    ) as feed:
        assert cli.main([]) == 0

    explore.assert_awaited_once()
    feed.assert_not_awaited()


def test_no_subcommand_defaults_to_feed():
    with patch.object(cli, "show_feed", new=AsyncMock(return_value=0)) as feed:
        assert cli.main([]) == 0
    feed.assert_awaited_once()


def test_explore_arguments_forwarded():
    with patch.object(cli, "show_explore", new=AsyncMock(return_value=0)) as explore:
        cli.main(["explore", "-k", "video,article", "--more", "2", "--refresh"])

    explore.assert_awaited_once_with(
        kinds=["video,article"], providers=None, more=2, refresh=True
    )


def test_feed_error_exit_code(monkeypatch: pytest.MonkeyPatch, capsys):
    monkeypatch.setenv("DATABASE_PATH", ":memory:")
    monkeypatch.delenv("AGGREGATOR_BASE_URL", raising=False)

    assert cli.main(["feed"]) == 1
    assert "not configured" in capsys.readouterr().out
