"""
Fieldbook Backend — Pydantic Record Schemas
=============================================

What:  Pydantic models for the record service: the shape read from the store
       (StoredRecord), the stable shape handed to clients (NormalizedRecord),
       and the error/health bodies.
How:   NormalizedRecord declares the normalized fields and allows extra keys,
       so every other document field passes through untouched. Field names
       are snake_case in Python and camelCase on the wire (aliases), matching
       what the web client has always read.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Store-side Model: what the locator hands to the shape merger
# ══════════════════════════════════════════════════════════════════════════


class StoredRecord(BaseModel):
    """
    One record as read from the record store (a table row or a JSON file).

    `document` is kept exactly as stored: a serialized string, bytes, or an
    already-decoded mapping. The shape merger decides how to decode it.
    """

    model_config = ConfigDict(frozen=True)

    identity: Optional[Union[int, str]] = Field(
        default=None,
        description="Opaque primary key (never exposed to clients)",
    )
    owner_email: str = Field(description="Owner identity")
    slug: str = Field(description="External lookup key, unique per owner")
    is_public: bool = Field(default=False, description="Authoritative visibility flag")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    document: Any = Field(description="Serialized or structured document payload")

    @classmethod
    def from_row(cls, row: Any) -> "StoredRecord":
        """Build from a content ORM row (see fieldbook.models.record)."""
        return cls(
            identity=row.id,
            owner_email=row.user_email,
            slug=row.slug,
            is_public=bool(row.is_public),
            created_at=row.created_at,
            document=row.document,
        )


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class NormalizedRecord(BaseModel):
    """
    Stable client-facing shape of a record.

    Declared fields are always present. Any other document field (title,
    content, slug, `by`, tags, ...) is carried as an extra key.

    Example:
        {
            "title": "Trip",
            "author": "bob@x.com",
            "personalNotes": "",
            "isFavorite": false,
            "dateAdded": "2024-05-01T09:30:00+00:00",
            "isPublic": false
        }
    """

    # Populated by alias only: snake_case document keys such as the legacy
    # `is_public` flag stay pass-through extras. Document-supplied values keep
    # whatever JSON type they were stored with (a numeric dateAdded, an object
    # `by`); only absent values are filled in.
    model_config = ConfigDict(extra="allow")

    author: Any = Field(description="Document `by`, then `author`, then viewer, then fallback")
    personal_notes: Any = Field(default="", alias="personalNotes")
    is_favorite: Any = Field(default=False, alias="isFavorite")
    date_added: Any = Field(
        default=None,
        alias="dateAdded",
        description="Document dateAdded, else the row's creation time (ISO 8601)",
    )
    is_public: bool = Field(default=False, alias="isPublic")

    def to_response(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys, extras included)."""
        return self.model_dump(by_alias=True, mode="json")


class ErrorResponse(BaseModel):
    """
    Error body returned for every non-2xx response.

    Only the short message is returned; context is logged server-side.

    Example:
        {"error": "Field note not found"}
    """

    error: str = Field(description="Short human-readable error message")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Record store connectivity: connected, disconnected")
    storage: str = Field(description="File-backed record root: available, missing")
    uptime_seconds: float = Field(description="Seconds since service started")
