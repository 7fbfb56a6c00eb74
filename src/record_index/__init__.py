"""
Record indexing on top of the Whoosh full-text engine.

This package maps attribute-value records onto engine documents and manages
the writer/searcher lifecycle around them:
- config: Pydantic settings and the per-handle configuration snapshot
- schema: Field storage policies and their Whoosh field types
- codec: Record <-> document translation and the aggregate content field
- handle: Index handles over memory or disk storage
- merge: Segment merge policies
- scheduler: Count-based optimize scheduling
- operations: add, delete, search, and search-and-delete
"""

from record_index.config import IndexConfig, IndexSettings
from record_index.errors import ConfigurationError, IndexOpenError, QueryParseError, RecordError, RecordIndexError
from record_index.handle import IndexHandle, disk_index, memory_index
from record_index.operations import SearchHit, add, delete, search, search_and_delete, search_hits
from record_index.schema import CONTENT_FIELD, FieldInfo, FieldPolicy


__all__ = [
    "CONTENT_FIELD",
    "ConfigurationError",
    "FieldInfo",
    "FieldPolicy",
    "IndexConfig",
    "IndexHandle",
    "IndexOpenError",
    "IndexSettings",
    "QueryParseError",
    "RecordError",
    "RecordIndexError",
    "SearchHit",
    "add",
    "delete",
    "disk_index",
    "memory_index",
    "search",
    "search_and_delete",
    "search_hits",
]
