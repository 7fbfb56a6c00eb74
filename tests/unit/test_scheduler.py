"""Unit tests for count-based optimize scheduling."""

from record_index import add, delete, search, search_and_delete
from record_index.scheduler import maybe_optimize, optimize


def _segment_count(handle) -> int:
    with handle.searcher() as searcher:
        return len(searcher.reader().leaf_readers())


def test_optimize_runs_once_frequency_reached(make_index):
    handle = make_index(optimize_frequency=2)

    add(handle, {"name": "Bob", "job": "Builder"})
    assert handle.updates == 1
    assert handle.optimizations == 0

    add(handle, {"name": "Donald", "job": "Computer Scientist"})
    assert handle.updates == 0
    assert handle.optimizations == 1
    assert not handle.has_writer
    assert not handle.has_searcher


def test_counter_increments_per_record(make_index):
    handle = make_index(optimize_frequency=10)
    add(handle, {"n": "1"}, {"n": "2"}, {"n": "3"})
    assert handle.updates == 3


def test_every_mutation_counts(make_index):
    handle = make_index(optimize_frequency=3)

    add(handle, {"name": "Bob"}, {"name": "Donald"})
    delete(handle, {"name": "Nobody"})
    assert handle.optimizations == 1
    assert handle.updates == 0

    search_and_delete(handle, "bob")
    assert handle.updates == 1


def test_search_does_not_count(make_index):
    handle = make_index(optimize_frequency=5)
    add(handle, {"name": "Bob"})

    search(handle, "bob", 10)

    assert handle.updates == 1
    assert handle.optimizations == 0


def test_maybe_optimize_below_threshold_is_noop(make_index):
    handle = make_index(optimize_frequency=4)
    handle.mark_updated(3)
    assert maybe_optimize(handle) is False
    assert handle.updates == 3


def test_optimize_merges_down_to_one_segment(make_index):
    handle = make_index(optimize_frequency=100, merge_factor=100)
    for name in ("Bob", "Donald", "Wendy"):
        add(handle, {"name": name})
    assert _segment_count(handle) == 3

    optimize(handle)

    assert _segment_count(handle) == 1
    assert handle.updates == 0
    assert handle.doc_count() == 3


def test_optimize_respects_max_segments(make_index):
    handle = make_index(optimize_frequency=100, merge_factor=100, optimize_max_segments=2)
    for name in ("Bob", "Donald", "Wendy", "Scoop"):
        add(handle, {"name": name})

    optimize(handle)

    assert _segment_count(handle) == 2
    assert handle.doc_count() == 4


def test_merge_factor_bounds_segment_count(make_index):
    handle = make_index(optimize_frequency=100, merge_factor=3)
    for i in range(6):
        add(handle, {"n": f"record{i}"})

    assert _segment_count(handle) < 6
    assert handle.doc_count() == 6
