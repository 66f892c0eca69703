"""
Tests for ablesense.core.autoreindex — event filtering and rescan throttling.
"""

from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from ablesense.core.autoreindex import AutoReindexer, SourceChangeHandler
from ablesense.core.config import AblesenseConfig


@pytest.fixture
def client(tmp_path):
    mock = MagicMock()
    mock.config = AblesenseConfig(use_env_path=False)
    mock.index_.search_roots = [tmp_path]
    mock.reindex.return_value = MagicMock(files_indexed=1, modules=1)
    return mock


@pytest.fixture
def reindexer(client):
    return AutoReindexer(client, interval_seconds=30, debounce_seconds=0)


class TestSourceChangeHandler:

    def test_source_change_marks_pending(self, reindexer):
        handler = SourceChangeHandler(reindexer, ".abl")
        handler.on_any_event(FileModifiedEvent("/ws/app.abl"))
        assert reindexer._pending_reindex is True

    def test_other_files_ignored(self, reindexer):
        handler = SourceChangeHandler(reindexer, ".abl")
        handler.on_any_event(FileModifiedEvent("/ws/notes.txt"))
        handler.on_any_event(DirModifiedEvent("/ws/pkg.abl"))
        handler.on_any_event(FileClosedEvent("/ws/app.abl"))
        assert reindexer._pending_reindex is False

    def test_rename_into_source(self, reindexer):
        handler = SourceChangeHandler(reindexer, ".abl")
        handler.on_any_event(FileMovedEvent("/ws/draft.tmp", "/ws/app.abl"))
        assert reindexer._pending_reindex is True


class TestAutoReindexer:

    def test_roots_follow_client_index(self, reindexer, tmp_path):
        assert reindexer.roots == [tmp_path]

    def test_first_reindex_runs(self, reindexer, client):
        assert reindexer._try_reindex() is True
        client.reindex.assert_called_once()

    def test_interval_throttles(self, reindexer, client):
        reindexer._try_reindex()
        assert reindexer._try_reindex() is False
        assert client.reindex.call_count == 1

    def test_failure_is_logged(self, reindexer, client, caplog):
        client.reindex.side_effect = RuntimeError("disk gone")
        with caplog.at_level("ERROR"):
            assert reindexer._try_reindex() is True
        assert "Re-index failed" in caplog.text

    def test_start_and_stop(self, reindexer):
        reindexer.start_watch()
        assert reindexer._thread.is_alive()
        reindexer.stop()
        assert not reindexer._thread.is_alive()

    def test_change_during_rescan_stays_pending(self, reindexer, client):
        def _reindex():
            reindexer.mark_pending()
            return MagicMock(files_indexed=1, modules=1)

        client.reindex.side_effect = _reindex
        reindexer.mark_pending()
        reindexer._process_pending()
        assert client.reindex.call_count == 1
        assert reindexer._pending_reindex is True

    def test_quiet_rescan_clears_pending(self, reindexer, client):
        reindexer.mark_pending()
        reindexer._process_pending()
        assert reindexer._pending_reindex is False

    def test_throttled_rescan_stays_pending(self, reindexer, client):
        reindexer._try_reindex()
        reindexer.mark_pending()
        reindexer._process_pending()
        assert client.reindex.call_count == 1
        assert reindexer._pending_reindex is True
