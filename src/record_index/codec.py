"""Translation between application records and engine documents.

A record is any mapping from field name to a value coercible to text. The
caller's per-field storage hints travel beside the record as a separate
``field_meta`` mapping (field name to :class:`FieldPolicy` or a plain
``{"stored": ..., "indexed": ...}`` dict); the record itself is never
mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

from whoosh.fields import FieldType, Schema

from record_index.errors import RecordError
from record_index.schema import (
    CONTENT_FIELD,
    DEFAULT_POLICY,
    FieldInfo,
    FieldMeta,
    FieldPolicy,
    check_field_name,
    describe_field,
)


logger = logging.getLogger(__name__)

# The content field is searchable but never handed back to callers.
CONTENT_POLICY = FieldPolicy(stored=False, indexed=True)


@dataclass(frozen=True)
class IndexDocument:
    """Engine-ready document: field values plus the policy each field needs."""

    fields: dict[str, str]
    policies: dict[str, FieldPolicy] = field(default_factory=dict)

    def field_types(self) -> dict[str, FieldType]:
        return {name: policy.field_type() for name, policy in self.policies.items()}


def as_text(value: Any) -> str:
    """Coerce a record value to the text the engine indexes."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _policy_for(name: str, field_meta: FieldMeta | None) -> FieldPolicy:
    if not field_meta:
        return DEFAULT_POLICY
    return FieldPolicy.coerce(field_meta.get(name))


def concat_stored_values(record: Mapping[Any, Any], field_meta: FieldMeta | None = None) -> str:
    """Join, with single spaces, the values of every field not marked ``stored: False``.

    Values appear in record iteration order.
    """
    return " ".join(
        as_text(value) for key, value in record.items() if _policy_for(as_text(key), field_meta).stored
    )


def record_to_document(
    record: Mapping[Any, Any],
    field_meta: FieldMeta | None = None,
    *,
    content: bool = True,
) -> IndexDocument:
    """Build the engine document for ``record``.

    Every field is emitted with the policy from ``field_meta`` (store and index
    when absent). With ``content`` enabled the aggregate field is appended.

    Raises:
        RecordError: If the record is not a mapping, a field name is invalid
            or reserved, or a field is neither stored nor indexed.
    """
    if not isinstance(record, Mapping):
        raise RecordError(f"Records must be mappings, got {type(record).__name__}")

    fields: dict[str, str] = {}
    policies: dict[str, FieldPolicy] = {}
    for key, value in record.items():
        name = check_field_name(as_text(key))
        if name in fields:
            raise RecordError(f"Field {name!r} appears more than once")
        policy = _policy_for(name, field_meta)
        if not (policy.stored or policy.indexed):
            raise RecordError(f"Field {name!r} must be stored, indexed, or both")
        fields[name] = as_text(value)
        policies[name] = policy

    if content:
        fields[CONTENT_FIELD] = concat_stored_values(record, field_meta)
        policies[CONTENT_FIELD] = CONTENT_POLICY

    return IndexDocument(fields=fields, policies=policies)


def document_to_record(
    stored_fields: Mapping[str, Any],
    schema: Schema,
) -> tuple[dict[str, str], dict[str, FieldInfo]]:
    """Map a hit's stored fields back to a record plus per-field metadata.

    The aggregate content field is always dropped, from both the record and
    the metadata.
    """
    record: dict[str, str] = {}
    info: dict[str, FieldInfo] = {}
    for name, value in stored_fields.items():
        if name == CONTENT_FIELD:
            continue
        record[name] = as_text(value)
        if name in schema:
            info[name] = describe_field(schema[name])
        else:
            logger.debug("Stored field %s missing from schema", name)
    return record, info
