"""Segment merge policies passed to Whoosh ``writer.commit(mergetype=...)``.

A merge policy is called with the committing writer and the index's current
segments. It merges any segments it chooses into the writer's new segment
and returns the segments that stay untouched.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
from typing import Any

from whoosh.reading import SegmentReader


logger = logging.getLogger(__name__)

MergePolicy = Callable[[Any, Sequence[Any]], list[Any]]


def _merge_into(writer: Any, segments: Sequence[Any]) -> None:
    """Copy the live documents of ``segments`` into ``writer``."""
    for segment in segments:
        reader = SegmentReader(writer.storage, writer.schema, segment)
        try:
            writer.add_reader(reader)
        finally:
            reader.close()


def merge_factor_policy(merge_factor: int) -> MergePolicy:
    """Merge the ``merge_factor`` smallest segments once that many exist."""

    def policy(writer: Any, segments: Sequence[Any]) -> list[Any]:
        if len(segments) < merge_factor:
            return list(segments)
        by_size = sorted(segments, key=lambda seg: seg.doc_count_all())
        to_merge, keep = by_size[:merge_factor], by_size[merge_factor:]
        logger.debug("Merging %d of %d segments", len(to_merge), len(segments))
        _merge_into(writer, to_merge)
        return keep

    return policy


def merge_down_to(max_segments: int) -> MergePolicy:
    """Consolidate the index into at most ``max_segments`` segments.

    The ``max_segments - 1`` largest segments without deletions are kept;
    everything else is merged into the writer's new segment, which drops
    deleted documents.
    """

    def policy(writer: Any, segments: Sequence[Any]) -> list[Any]:
        if len(segments) <= max_segments and not any(seg.has_deletions() for seg in segments):
            return list(segments)

        clean = sorted(
            (seg for seg in segments if not seg.has_deletions()),
            key=lambda seg: seg.doc_count_all(),
            reverse=True,
        )
        keep = clean[: max_segments - 1]
        to_merge = [seg for seg in segments if seg not in keep]
        logger.debug("Optimizing %d segments into 1, keeping %d", len(to_merge), len(keep))
        _merge_into(writer, to_merge)
        return keep

    return policy
