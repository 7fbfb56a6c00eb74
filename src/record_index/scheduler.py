"""Count-based optimize scheduling.

Every mutating operation bumps the handle's update counter. Once the counter
reaches the configured ``optimize_frequency`` the index is merged down to
``optimize_max_segments`` segments, the counter is reset, and the cached
writer and searcher are dropped so later operations see the merged index.
"""

from __future__ import annotations

import logging

from record_index.handle import IndexHandle
from record_index.merge import merge_down_to
from record_index.observability import OPTIMIZE_COUNT, create_span


logger = logging.getLogger(__name__)


def optimize(handle: IndexHandle) -> None:
    """Run one optimize cycle unconditionally."""
    max_segments = handle.config.optimize_max_segments
    with handle.write_lock, create_span(
        "index.optimize",
        attributes={"index.name": handle.name, "index.max_segments": max_segments},
    ):
        handle.commit()
        handle.get_writer()
        handle.commit(mergetype=merge_down_to(max_segments))
        handle.updates = 0
        handle.optimizations += 1
        handle.close_index()
        OPTIMIZE_COUNT.labels(index=handle.name).inc()
        logger.info("Optimized index %s down to %d segment(s)", handle.name, max_segments)


def maybe_optimize(handle: IndexHandle) -> bool:
    """Optimize when enough updates have accumulated. Returns True if it ran."""
    with handle.write_lock:
        if handle.updates < handle.config.optimize_frequency:
            return False
        optimize(handle)
        return True
