"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Iterator
import os

import pytest

from record_index import IndexConfig, IndexHandle, memory_index


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Drop RECORD_INDEX_* variables and any .env file so defaults apply."""
    for key in list(os.environ):
        if key.upper().startswith("RECORD_INDEX_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def index() -> Iterator[IndexHandle]:
    """In-memory index with default configuration."""
    handle = memory_index(IndexConfig(), name="test")
    yield handle
    handle.close()


@pytest.fixture
def make_index():
    """Factory for in-memory indexes with custom configuration."""
    handles: list[IndexHandle] = []

    def _make(name: str = "test", **overrides) -> IndexHandle:
        handle = memory_index(IndexConfig(**overrides), name=name)
        handles.append(handle)
        return handle

    yield _make
    for handle in handles:
        handle.close()
