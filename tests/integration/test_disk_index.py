"""Integration tests for indexes stored in a directory on disk."""

import pytest

from record_index import IndexConfig, IndexOpenError, add, delete, disk_index, search


BOB = {"name": "Bob", "job": "Builder"}
DONALD = {"name": "Donald", "job": "Computer Scientist"}


@pytest.fixture
def directory(tmp_path):
    path = tmp_path / "people"
    path.mkdir()
    return path


def test_documents_persist_across_handles(directory):
    with disk_index(directory, IndexConfig()) as handle:
        add(handle, BOB, DONALD, field_meta={"job": {"stored": False}})

    with disk_index(directory, IndexConfig()) as reopened:
        assert reopened.doc_count() == 2
        assert search(reopened, "job:builder", 10) == [{"name": "Bob"}]
        assert search(reopened, "builder", 10) == []
        assert search(reopened, "job:scientist", 10) == [{"name": "Donald"}]


def test_searcher_sees_commits_from_other_handles(directory):
    with disk_index(directory, IndexConfig()) as reader, disk_index(directory, IndexConfig()) as writer:
        add(writer, BOB)
        assert search(reader, "bob", 10) == [BOB]

        add(writer, DONALD)
        delete(writer, BOB)

        assert search(reader, "donald", 10) == [DONALD]
        assert search(reader, "bob", 10) == []


def test_write_lock_contention(directory):
    with disk_index(directory, IndexConfig()) as first, disk_index(directory, IndexConfig()) as second:
        first.get_writer()

        with pytest.raises(IndexOpenError):
            add(second, BOB)
        assert not second.has_writer

        first.rollback()
        assert add(second, BOB) == 1
        assert search(first, "bob", 10) == [BOB]


def test_multi_file_segments(directory):
    config = IndexConfig(compound_file=False, optimize_frequency=3, optimize_max_segments=1)
    with disk_index(directory, config) as handle:
        add(handle, BOB)
        add(handle, DONALD)
        add(handle, {"name": "Wendy", "job": "Builder"})

        assert handle.optimizations == 1
        with handle.searcher() as searcher:
            assert len(searcher.reader().leaf_readers()) == 1
        assert sorted(record["name"] for record in search(handle, "builder", 10)) == ["Bob", "Wendy"]
