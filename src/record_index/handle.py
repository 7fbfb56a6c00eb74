"""Index handle: storage, configuration snapshot, and writer/searcher lifecycle.

An :class:`IndexHandle` owns one logical index. It caches at most one writer
and one current searcher:

* ``get_writer`` returns the cached writer or lazily opens one. Whoosh writers
  are finished by ``commit``/``cancel``, so every commit clears the cache and
  the next mutation opens a fresh writer.
* ``get_searcher`` / ``searcher()`` return the cached searcher only while it is
  up to date with the latest commit; otherwise a new one is opened.
* ``close_index`` commits any cached writer and drops the cached searcher.

Mutations are serialized by ``write_lock``. Searchers are leased: a searcher
retired by a commit stays usable by readers already holding it and is closed
once the last lease is released.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
import os
from pathlib import Path
import threading
from typing import TYPE_CHECKING

from whoosh.fields import Schema
from whoosh.filedb.filestore import FileStorage, RamStorage
from whoosh.index import EmptyIndexError, LockError

from record_index.config import IndexConfig
from record_index.errors import IndexOpenError
from record_index.merge import MergePolicy, merge_factor_policy
from record_index.observability import INDEX_DOC_COUNT


if TYPE_CHECKING:
    from whoosh.filedb.filestore import Storage
    from whoosh.index import Index
    from whoosh.searching import Searcher
    from whoosh.writing import IndexWriter

logger = logging.getLogger(__name__)

_OPEN_ERRORS = (LockError, EmptyIndexError, OSError)


class _SearcherSlot:
    __slots__ = ("generation", "leases", "retired", "searcher")

    def __init__(self, searcher: Searcher, generation: int) -> None:
        self.searcher = searcher
        self.generation = generation
        self.leases = 0
        self.retired = False


class IndexHandle:
    """A logical index over memory or disk storage."""

    def __init__(
        self,
        storage: Storage,
        config: IndexConfig,
        *,
        name: str,
        path: Path | None = None,
    ) -> None:
        self.name = name
        self.path = path
        self.config = config
        self.updates = 0
        self.optimizations = 0
        self._storage = storage
        self._index: Index | None = None
        self._writer: IndexWriter | None = None
        self._slot: _SearcherSlot | None = None
        self._closed = False
        self._write_lock = threading.RLock()
        self._searcher_lock = threading.Lock()
        self._open_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"IndexHandle(name={self.name!r}, updates={self.updates})"

    def __enter__(self) -> IndexHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def write_lock(self) -> threading.RLock:
        """Lock serializing every mutation of this handle."""
        return self._write_lock

    @property
    def has_writer(self) -> bool:
        return self._writer is not None

    @property
    def has_searcher(self) -> bool:
        return self._slot is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def _open_index(self) -> Index:
        with self._open_lock:
            if self._closed:
                raise IndexOpenError(f"Index {self.name} is closed")
            if self._index is not None:
                return self._index
            if self.path is not None and not self.path.is_dir():
                raise IndexOpenError(f"Index directory does not exist: {self.path}")
            try:
                if self._storage.index_exists():
                    index = self._storage.open_index()
                else:
                    logger.info("Creating empty index %s", self.name)
                    index = self._storage.create_index(Schema())
            except _OPEN_ERRORS as exc:
                raise IndexOpenError(f"Cannot open index {self.name}: {exc}") from exc
            self._index = index
            return index

    def schema(self) -> Schema:
        """Return the latest committed schema."""
        return self._open_index().schema

    def doc_count(self) -> int:
        """Return the number of live committed documents."""
        return self._open_index().doc_count()

    def mark_updated(self, count: int = 1) -> None:
        with self._write_lock:
            self.updates += count

    # Writer lifecycle

    def get_writer(self) -> IndexWriter:
        """Return the cached writer, opening one with this handle's settings if needed."""
        with self._write_lock:
            if self._writer is not None:
                return self._writer
            index = self._open_index()
            try:
                writer = index.writer(
                    limitmb=self.config.ram_buffer_size_mb,
                    compound=self.config.compound_file,
                )
            except _OPEN_ERRORS as exc:
                raise IndexOpenError(f"Cannot open writer for index {self.name}: {exc}") from exc
            logger.debug("Opened writer for index %s", self.name)
            self._writer = writer
            return writer

    def commit(self, mergetype: MergePolicy | None = None) -> bool:
        """Commit the cached writer, if any, and invalidate the cached searcher.

        Args:
            mergetype: Merge policy for this commit; defaults to the
                merge-factor policy from the handle's configuration.

        Returns:
            True when a writer was committed.
        """
        with self._write_lock:
            writer = self._writer
            if writer is None:
                return False
            # The writer is finished whether or not commit succeeds.
            self._writer = None
            writer.commit(mergetype=mergetype or merge_factor_policy(self.config.merge_factor))
            logger.debug("Committed index %s", self.name)
            self._invalidate_searcher()
            INDEX_DOC_COUNT.labels(index=self.name).set(self.doc_count())
            return True

    def rollback(self) -> bool:
        """Discard work queued in the cached writer. Returns True if there was one."""
        with self._write_lock:
            writer = self._writer
            if writer is None:
                return False
            self._writer = None
            writer.cancel()
            logger.info("Rolled back uncommitted changes on index %s", self.name)
            return True

    def close_index(self) -> None:
        """Commit any cached writer and drop both cached handles."""
        with self._write_lock:
            self.commit()
            self._invalidate_searcher()

    # Searcher lifecycle

    def _current_slot(self) -> _SearcherSlot:
        index = self._open_index()
        try:
            # Empty readers report no generation, so compare against the TOC
            # generation seen when the searcher was opened.
            generation = index.latest_generation()
            slot = self._slot
            if slot is not None:
                if slot.generation == generation:
                    return slot
                logger.debug("Searcher for index %s is stale", self.name)
                self._retire(slot)
            searcher = index.searcher()
        except _OPEN_ERRORS as exc:
            raise IndexOpenError(f"Cannot open searcher for index {self.name}: {exc}") from exc
        self._slot = _SearcherSlot(searcher, generation)
        return self._slot

    def _retire(self, slot: _SearcherSlot) -> None:
        slot.retired = True
        if self._slot is slot:
            self._slot = None
        if slot.leases == 0:
            slot.searcher.close()

    def _invalidate_searcher(self) -> None:
        with self._searcher_lock:
            if self._slot is not None:
                self._retire(self._slot)

    def get_searcher(self) -> Searcher:
        """Return a searcher reflecting the latest commit.

        The returned searcher is owned by the handle and may be closed by a
        later commit; concurrent readers should use :meth:`searcher`.
        """
        with self._searcher_lock:
            return self._current_slot().searcher

    @contextmanager
    def searcher(self) -> Iterator[Searcher]:
        """Lease the current searcher for the duration of the block."""
        with self._searcher_lock:
            slot = self._current_slot()
            slot.leases += 1
        try:
            yield slot.searcher
        finally:
            with self._searcher_lock:
                slot.leases -= 1
                if slot.retired and slot.leases == 0:
                    slot.searcher.close()

    def close(self) -> None:
        """Close the handle, committing any queued work first."""
        if self._closed:
            return
        with self._write_lock:
            if self._index is not None:
                self.close_index()
                self._index.close()
            self._closed = True
            logger.debug("Closed index %s", self.name)


def memory_index(config: IndexConfig | None = None, *, name: str = "memory") -> IndexHandle:
    """Create a handle over process-lifetime memory storage.

    When ``config`` is omitted the ``RECORD_INDEX_*`` settings are read now
    and snapshotted into the handle.
    """
    return IndexHandle(RamStorage(), config or IndexConfig.from_settings(), name=name)


def disk_index(
    path: str | os.PathLike[str],
    config: IndexConfig | None = None,
    *,
    name: str | None = None,
) -> IndexHandle:
    """Create a handle over an on-disk index directory.

    The directory must exist; an index is created in it on first use when
    none is present.
    """
    directory = Path(path)
    return IndexHandle(
        FileStorage(str(directory)),
        config or IndexConfig.from_settings(),
        name=name or directory.name or str(directory),
        path=directory,
    )
