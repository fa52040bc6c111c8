"""
Fieldbook Backend — Content Kind Registry
===========================================

What:  Maps each content kind name (the `{kind}` path segment) to its ORM model
       and its client-facing error messages.
Who:   Used by the record routes to resolve the path, and by the locator to
       pick the table and the message for each failure.

Kinds:
    fieldnotes       → fieldnotes table
    creativewriting  → creativewriting table
    recipes          → recipes table
"""

from dataclasses import dataclass
from typing import Dict, Type

from fieldbook.exceptions import NotFoundError
from fieldbook.models.record import ContentRecordMixin, CreativeWriting, FieldNote, Recipe


@dataclass(frozen=True)
class RecordKind:
    """One content type: its table plus the messages clients see."""

    name: str
    model: Type[ContentRecordMixin]
    not_found_message: str
    read_failure_message: str
    list_failure_message: str


FIELD_NOTES = RecordKind(
    name="fieldnotes",
    model=FieldNote,
    not_found_message="Field note not found",
    read_failure_message="Failed to read field note",
    list_failure_message="Failed to fetch fieldnotes",
)

CREATIVE_WRITING = RecordKind(
    name="creativewriting",
    model=CreativeWriting,
    not_found_message="Creative writing entry not found",
    read_failure_message="Failed to read creative writing entry",
    list_failure_message="Failed to fetch creative writing",
)

RECIPES = RecordKind(
    name="recipes",
    model=Recipe,
    not_found_message="Recipe not found",
    read_failure_message="Failed to read recipe",
    list_failure_message="Failed to read recipes",
)

RECORD_KINDS: Dict[str, RecordKind] = {
    kind.name: kind for kind in (FIELD_NOTES, CREATIVE_WRITING, RECIPES)
}


def get_record_kind(name: str) -> RecordKind:
    """
    Resolve a kind name from the URL.

    Raises:
        NotFoundError: Unknown kind (the path does not exist)
    """
    kind = RECORD_KINDS.get(name)
    if kind is None:
        raise NotFoundError(message="Not found", context={"kind": name})
    return kind
