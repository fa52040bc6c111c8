"""
Fieldbook Backend — Shape Merger
==================================

What:  Merges a stored record's embedded document with its authoritative row
       fields into one NormalizedRecord.
How:   decode_document() tags and decodes the raw column value; a failed
       decode raises CorruptRecordError and nothing partial is returned. The
       defaults below are then applied to the decoded mapping.

Normalization Rules:
    author         document.by → document.author → viewer (only when the viewer
                   owns the record) → fallback author ("Anonymous")
    personalNotes  document value, else ""
    isFavorite     document value, else false
    dateAdded      document value, else the row's created timestamp (ISO 8601)
    isPublic       always the row column; legacy embedded `is_public` and
                   `public` keys are overwritten with it
    everything else passes through unchanged

"Absent" means missing, null, or empty string. A present value (including
false, a number, or an object) is never replaced by a default and keeps
its stored type.
"""

from typing import Any, Dict, Mapping, Optional

from fieldbook.exceptions import CorruptRecordError
from fieldbook.schemas.record import NormalizedRecord, StoredRecord
from fieldbook.services.document_codec import decode_document


LEGACY_VISIBILITY_KEYS = ("is_public", "public")


def is_absent(value: Any) -> bool:
    return value is None or value == ""


def first_present(document: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = document.get(key)
        if not is_absent(value):
            return value
    return None


def resolve_author(
    document: Mapping[str, Any],
    owner_email: str,
    viewer: Optional[str],
    fallback_author: str,
) -> Any:
    """
    Pick the author shown to the client.

    `by` wins over `author` whenever both are present. The viewer's identity
    is used only when the viewer owns the record; a public record read by
    someone else never shows the reader as its author.
    """
    author = first_present(document, "by", "author")
    if author is not None:
        return author
    if viewer and viewer == owner_email:
        return viewer
    return fallback_author


def merge_record(
    record: StoredRecord,
    viewer: Optional[str],
    fallback_author: str = "Anonymous",
    corrupt_message: str = "Failed to read record",
) -> NormalizedRecord:
    """
    Normalize one stored record.

    Args:
        record:           Record as read from the store
        viewer:           Requesting identity, or None for anonymous requests
        fallback_author:  Author used when nothing else supplies one
        corrupt_message:  Client message when the document cannot be decoded

    Raises:
        CorruptRecordError: The document is not a decodable JSON object
    """
    decoded = decode_document(record.document)
    if not decoded.ok:
        raise CorruptRecordError(
            message=corrupt_message,
            context={
                "slug": record.slug,
                "owner": record.owner_email,
                "encoding": decoded.encoding.value,
                "reason": decoded.error,
            },
        )

    document: Dict[str, Any] = decoded.document
    merged: Dict[str, Any] = dict(document)

    merged["author"] = resolve_author(document, record.owner_email, viewer, fallback_author)

    if is_absent(document.get("personalNotes")):
        merged["personalNotes"] = ""
    if is_absent(document.get("isFavorite")):
        merged["isFavorite"] = False
    if is_absent(document.get("dateAdded")):
        merged["dateAdded"] = record.created_at.isoformat() if record.created_at else None

    merged["isPublic"] = record.is_public
    for key in LEGACY_VISIBILITY_KEYS:
        if key in merged:
            merged[key] = record.is_public

    return NormalizedRecord.model_validate(merged)
