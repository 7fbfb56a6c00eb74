"""Record operations on an index handle: add, delete, search, and search-and-delete.

Mutating operations run under the handle's write lock, bump the update
counter once per record (once per call for search-and-delete), commit, and
then give the optimize scheduler a chance to run. Searches only read.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from whoosh.qparser import QueryParser
from whoosh.query import And, Query, Term

from record_index.codec import IndexDocument, as_text, document_to_record, record_to_document
from record_index.errors import ConfigurationError, QueryParseError, RecordError
from record_index.handle import IndexHandle
from record_index.observability import INDEX_UPDATES, SEARCH_LATENCY, bind_index, create_span, track_latency
from record_index.scheduler import maybe_optimize
from record_index.schema import CONTENT_FIELD, FieldInfo, FieldMeta, FieldPolicy, describe_field, policy_of


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """A ranked search result mapped back to a record."""

    record: dict[str, str]
    fields: dict[str, FieldInfo] = field(default_factory=dict)
    score: float = 0.0


def _declare_fields(writer: Any, documents: Sequence[IndexDocument]) -> None:
    """Add unseen fields to the writer's schema before any document is submitted."""
    schema = writer.schema
    declared: dict[str, FieldPolicy] = {}
    for document in documents:
        for name, policy in document.policies.items():
            existing = declared.get(name)
            if existing is None:
                if name not in schema:
                    writer.add_field(name, policy.field_type())
                    declared[name] = policy
                    logger.debug("Declared field %s (stored=%s, indexed=%s)", name, policy.stored, policy.indexed)
                    continue
                existing = declared[name] = policy_of(schema[name])
            if existing != policy:
                logger.warning(
                    "Field %s is already declared with stored=%s, indexed=%s; ignoring requested policy",
                    name,
                    existing.stored,
                    existing.indexed,
                )


def _split_entry(entry: Any, field_meta: FieldMeta | None) -> tuple[Any, FieldMeta | None]:
    """Separate a ``(record, meta)`` pair; per-record hints override the batch hints."""
    if isinstance(entry, tuple) and len(entry) == 2 and isinstance(entry[0], Mapping):
        record, meta = entry
        if meta is None:
            return record, field_meta
        if not isinstance(meta, Mapping):
            raise RecordError(f"Record metadata must be a mapping, got {type(meta).__name__}")
        return record, {**(field_meta or {}), **meta}
    return entry, field_meta


def add(handle: IndexHandle, *records: Any, field_meta: FieldMeta | None = None) -> int:
    """Index ``records`` and commit them as one batch.

    Args:
        handle: Target index
        *records: Mappings from field name to value, or ``(record, meta)``
            pairs carrying that record's own storage hints
        field_meta: Per-field storage hints applied to every record in the batch

    Returns:
        Number of records added.

    Raises:
        RecordError: If any record cannot be converted; nothing is submitted.
    """
    documents = [
        record_to_document(record, meta, content=handle.config.content_enabled)
        for record, meta in (_split_entry(entry, field_meta) for entry in records)
    ]
    if not documents:
        return 0

    bind_index(handle.name)
    with handle.write_lock, create_span(
        "index.add",
        attributes={"index.name": handle.name, "index.record_count": len(documents)},
    ):
        writer = handle.get_writer()
        _declare_fields(writer, documents)
        for document in documents:
            writer.add_document(**document.fields)
            handle.updates += 1
        INDEX_UPDATES.labels(index=handle.name, operation="add").inc(len(documents))
        handle.commit()
        maybe_optimize(handle)
    return len(documents)


def build_delete_query(record: Mapping[Any, Any]) -> Query | None:
    """Build a query matching documents whose fields all equal the record's values.

    Field names and values are lower-cased, matching the analyzer's indexed
    terms. Returns None for an empty record.
    """
    if not isinstance(record, Mapping):
        raise RecordError(f"Records must be mappings, got {type(record).__name__}")
    clauses = [Term(as_text(key).lower(), as_text(value).lower()) for key, value in record.items()]
    if not clauses:
        return None
    return And(clauses)


def delete(handle: IndexHandle, *records: Mapping[Any, Any]) -> int:
    """Delete every document exactly matching each of ``records``.

    Returns:
        Number of documents deleted.
    """
    queries = [build_delete_query(record) for record in records]
    if not queries:
        return 0

    bind_index(handle.name)
    deleted = 0
    with handle.write_lock, create_span(
        "index.delete",
        attributes={"index.name": handle.name, "index.record_count": len(queries)},
    ) as span:
        writer = handle.get_writer()
        for query in queries:
            if query is not None:
                deleted += writer.delete_by_query(query)
            handle.updates += 1
        INDEX_UPDATES.labels(index=handle.name, operation="delete").inc(len(queries))
        handle.commit()
        maybe_optimize(handle)
        span.set_attribute("index.deleted_count", deleted)
    return deleted


def resolve_default_field(handle: IndexHandle, default_field: str | None) -> str:
    """Return the field bare query terms search, or raise if there is none."""
    if default_field is not None:
        return as_text(default_field)
    if handle.config.content_enabled:
        return CONTENT_FIELD
    raise ConfigurationError("No default search field specified")


def _query_error(query: Query) -> str | None:
    error = getattr(query, "error", None)
    if error:
        return str(error)
    for child in query.children():
        error = _query_error(child)
        if error:
            return error
    return None


def parse_query(query_text: str, default_field: str, schema: Any) -> Query:
    """Parse ``query_text`` with the engine's query syntax.

    Raises:
        ConfigurationError: If ``default_field`` exists but is not indexed.
        QueryParseError: If the parser fails or marks part of the query as an error.
    """
    if default_field in schema and not describe_field(schema[default_field]).indexed:
        raise ConfigurationError(f"Default search field {default_field!r} is stored but not indexed")
    parser = QueryParser(default_field, schema)
    try:
        query = parser.parse(query_text)
    except Exception as exc:
        raise QueryParseError(query_text, str(exc)) from exc
    error = _query_error(query)
    if error:
        raise QueryParseError(query_text, error)
    return query


def search_hits(
    handle: IndexHandle,
    query_text: str,
    max_results: int,
    default_field: str | None = None,
) -> list[SearchHit]:
    """Search and return ranked hits with per-field metadata."""
    search_field = resolve_default_field(handle, default_field)
    bind_index(handle.name)
    with (
        create_span(
            "index.search",
            attributes={
                "index.name": handle.name,
                "search.query": query_text[:100],
                "search.max_results": max_results,
            },
        ) as span,
        track_latency(SEARCH_LATENCY, index=handle.name),
    ):
        if max_results <= 0:
            span.set_attribute("search.result_count", 0)
            return []

        hits: list[SearchHit] = []
        with handle.searcher() as searcher:
            query = parse_query(query_text, search_field, searcher.schema)
            for hit in searcher.search(query, limit=max_results):
                record, fields = document_to_record(hit.fields(), searcher.schema)
                score = float(hit.score) if hit.score is not None else 0.0
                hits.append(SearchHit(record=record, fields=fields, score=score))

        span.set_attribute("search.result_count", len(hits))
        return hits


def search(
    handle: IndexHandle,
    query_text: str,
    max_results: int,
    default_field: str | None = None,
) -> list[dict[str, str]]:
    """Search the index and return matching records in ranked order.

    Bare terms search ``default_field``, or the aggregate content field when
    it is omitted and content aggregation is enabled.

    Raises:
        ConfigurationError: If no default field is given and content is disabled.
        QueryParseError: If the query syntax is malformed.
    """
    return [hit.record for hit in search_hits(handle, query_text, max_results, default_field)]


def search_and_delete(handle: IndexHandle, query_text: str, default_field: str | None = None) -> int:
    """Delete every document matching a free-text query.

    Returns:
        Number of documents deleted.
    """
    search_field = resolve_default_field(handle, default_field)
    bind_index(handle.name)
    with handle.write_lock, create_span(
        "index.search_and_delete",
        attributes={"index.name": handle.name, "search.query": query_text[:100]},
    ) as span:
        query = parse_query(query_text, search_field, handle.schema())
        writer = handle.get_writer()
        deleted = writer.delete_by_query(query)
        handle.updates += 1
        INDEX_UPDATES.labels(index=handle.name, operation="search_and_delete").inc()
        handle.commit()
        maybe_optimize(handle)
        span.set_attribute("index.deleted_count", deleted)
    return deleted
