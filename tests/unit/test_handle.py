"""Unit tests for the writer/searcher lifecycle of an index handle."""

import pytest
from whoosh.fields import TEXT
from whoosh.index import FileIndex, LockError

from record_index import IndexOpenError, add, disk_index, search


def _queue_document(handle, **fields):
    writer = handle.get_writer()
    for name in fields:
        if name not in writer.schema:
            writer.add_field(name, TEXT(stored=True))
    writer.add_document(**fields)


class TestWriterLifecycle:
    def test_writer_cached_until_commit(self, index):
        first = index.get_writer()
        assert index.get_writer() is first
        assert index.has_writer

        assert index.commit() is True
        assert not index.has_writer
        assert index.get_writer() is not first

    def test_commit_without_writer_is_noop(self, index):
        assert index.commit() is False

    def test_rollback_discards_queued_documents(self, index):
        _queue_document(index, name="Queued")

        assert index.rollback() is True
        assert not index.has_writer
        assert index.doc_count() == 0
        assert index.rollback() is False

    def test_close_index_commits_queued_documents(self, index):
        _queue_document(index, name="Queued")
        index.get_searcher()

        index.close_index()

        assert not index.has_writer
        assert not index.has_searcher
        assert index.doc_count() == 1

    def test_lock_failure_leaves_no_writer(self, index, monkeypatch):
        def locked_writer(self, **kwargs):
            raise LockError("WRITELOCK held")

        monkeypatch.setattr(FileIndex, "writer", locked_writer)
        with pytest.raises(IndexOpenError):
            index.get_writer()
        assert not index.has_writer

        monkeypatch.undo()
        assert add(index, {"name": "Bob"}) == 1


class TestSearcherLifecycle:
    def test_searcher_reused_while_current(self, index):
        assert index.get_searcher() is index.get_searcher()
        assert index.has_searcher

    def test_empty_index_searcher_stays_open(self, index):
        first = index.get_searcher()

        assert index.get_searcher() is first
        assert not first.is_closed

    def test_searcher_reused_between_commits(self, index):
        add(index, {"name": "Bob"})
        first = index.get_searcher()
        search(index, "bob", 10)

        assert index.get_searcher() is first
        assert not first.is_closed

    def test_searcher_replaced_after_commit(self, index):
        stale = index.get_searcher()

        add(index, {"name": "Bob"})
        fresh = index.get_searcher()

        assert fresh is not stale
        assert fresh.up_to_date()
        assert fresh.doc_count() == 1

    def test_leased_searcher_survives_commit(self, index):
        with index.searcher() as leased:
            add(index, {"name": "Bob"})
            assert leased.doc_count() == 0
            assert not index.has_searcher

        with index.searcher() as current:
            assert current.doc_count() == 1


class TestHandleClose:
    def test_close_commits_and_rejects_further_use(self, index):
        _queue_document(index, name="Queued")

        index.close()

        assert index.closed
        with pytest.raises(IndexOpenError):
            index.get_writer()
        index.close()

    def test_context_manager_closes(self, make_index):
        with make_index() as handle:
            add(handle, {"name": "Bob"})
        assert handle.closed


class TestDiskStorage:
    def test_missing_directory_fails_then_recovers(self, tmp_path):
        directory = tmp_path / "missing"
        handle = disk_index(directory)

        with pytest.raises(IndexOpenError):
            add(handle, {"name": "Bob"})
        assert not handle.has_writer
        assert not handle.has_searcher
        assert handle.updates == 0

        directory.mkdir()
        add(handle, {"name": "Bob"})
        assert search(handle, "bob", 10) == [{"name": "Bob"}]
        handle.close()

    def test_name_defaults_to_directory_name(self, tmp_path):
        handle = disk_index(tmp_path / "people")
        assert handle.name == "people"
