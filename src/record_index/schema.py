"""
Field storage policy for record indexing.

Maps the per-field hints callers attach to records onto Whoosh field types,
and reports the engine's view of a field back to callers. Supports:
- FieldPolicy: caller-side ``stored`` / ``indexed`` hints (both default True)
- FieldInfo: engine-reported stored / indexed / tokenized flags of a field
- CONTENT_FIELD: reserved name of the aggregate catch-all field

Policy to field type mapping:
- stored and indexed: ``TEXT(stored=True)``
- indexed only: ``TEXT(stored=False)``
- stored only: ``STORED()``
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from whoosh.fields import STORED, TEXT, FieldType

from record_index.errors import RecordError


# Whoosh rejects field names starting with an underscore, so the reserved
# name uses a trailing marker instead.
CONTENT_FIELD = "content__"

FieldMeta = Mapping[str, "FieldPolicy | Mapping[str, bool]"]


@dataclass(frozen=True)
class FieldPolicy:
    """Storage hints for one record field.

    Args:
        stored: Keep the raw value retrievable from search hits (default: True)
        indexed: Tokenize the value so it is searchable (default: True)
    """

    stored: bool = True
    indexed: bool = True

    @classmethod
    def coerce(cls, value: FieldPolicy | Mapping[str, Any] | None) -> FieldPolicy:
        """Accept a policy, a ``{"stored": ..., "indexed": ...}`` mapping, or None."""
        if value is None:
            return DEFAULT_POLICY
        if isinstance(value, FieldPolicy):
            return value
        if isinstance(value, Mapping):
            unknown = set(value) - {"stored", "indexed"}
            if unknown:
                raise RecordError(f"Unknown field policy keys: {sorted(unknown)}")
            # Only an explicit False turns a capability off.
            return cls(stored=value.get("stored") is not False, indexed=value.get("indexed") is not False)
        raise RecordError(f"Field policy must be a FieldPolicy or mapping, got {type(value).__name__}")

    def field_type(self) -> FieldType:
        """Return the Whoosh field type implementing this policy."""
        if self.indexed:
            return TEXT(stored=self.stored)
        if self.stored:
            return STORED()
        raise RecordError("A field must be stored, indexed, or both")


DEFAULT_POLICY = FieldPolicy()


@dataclass(frozen=True)
class FieldInfo:
    """How the engine holds a field, as reported on read-back."""

    stored: bool
    indexed: bool
    tokenized: bool

    def to_dict(self) -> dict[str, bool]:
        return {"stored": self.stored, "indexed": self.indexed, "tokenized": self.tokenized}


def describe_field(field: FieldType) -> FieldInfo:
    """Report the stored/indexed/tokenized flags of a Whoosh field type."""
    indexed = bool(getattr(field, "indexed", field.format is not None))
    return FieldInfo(
        stored=bool(field.stored),
        indexed=indexed,
        tokenized=indexed and getattr(field, "analyzer", None) is not None,
    )


def policy_of(field: FieldType) -> FieldPolicy:
    """Return the policy an existing Whoosh field type implements."""
    info = describe_field(field)
    return FieldPolicy(stored=info.stored, indexed=info.indexed)


def check_field_name(name: str) -> str:
    """Validate a record field name against engine and reserved-name rules."""
    if not name:
        raise RecordError("Field names cannot be empty")
    if name == CONTENT_FIELD:
        raise RecordError(f"{CONTENT_FIELD!r} is reserved for the aggregate content field")
    if name.startswith("_"):
        raise RecordError(f"Field name {name!r} cannot start with an underscore")
    if any(ch.isspace() for ch in name):
        raise RecordError(f"Field name {name!r} cannot contain whitespace")
    return name
