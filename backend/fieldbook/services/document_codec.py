"""
Fieldbook Backend — Embedded Document Decoding
================================================

What:  Turns the raw `json` column value into a document mapping.
How:   The raw value is tagged exactly once by its runtime type, then decoded
       according to the tag. The result carries either the mapping or an error
       description; it never raises, so callers decide how to report failure.

Tags:
    STRUCTURED   Driver already decoded the column (dict)
    SERIALIZED   JSON text (str, bytes, bytearray)
    UNSUPPORTED  Anything else (None, numbers, lists, ...)

A JSON value that decodes to something other than an object (list, number,
string, null) is a decode error: a record document is always a mapping.
"""

import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


class DocumentEncoding(str, enum.Enum):
    STRUCTURED = "structured"
    SERIALIZED = "serialized"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one raw document."""

    encoding: DocumentEncoding
    document: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.document is not None


def classify_document(raw: Any) -> DocumentEncoding:
    if isinstance(raw, dict):
        return DocumentEncoding.STRUCTURED
    if isinstance(raw, (str, bytes, bytearray)):
        return DocumentEncoding.SERIALIZED
    return DocumentEncoding.UNSUPPORTED


def decode_document(raw: Any) -> DecodeResult:
    """
    Decode a stored document.

    Example:
        >>> decode_document('{"title": "Trip"}').document
        {'title': 'Trip'}
        >>> decode_document("[1, 2]").error
        'document is a JSON list, expected an object'
    """
    encoding = classify_document(raw)

    if encoding is DocumentEncoding.STRUCTURED:
        # Copy: merging must not mutate the driver's object
        return DecodeResult(encoding=encoding, document=dict(raw))

    if encoding is DocumentEncoding.SERIALIZED:
        try:
            value = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            return DecodeResult(encoding=encoding, error=f"invalid JSON: {e}")
        if not isinstance(value, dict):
            return DecodeResult(
                encoding=encoding,
                error=f"document is a JSON {_json_type_name(value)}, expected an object",
            )
        return DecodeResult(encoding=encoding, document=value)

    return DecodeResult(
        encoding=encoding,
        error=f"unsupported document type {type(raw).__name__}",
    )


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "list"
