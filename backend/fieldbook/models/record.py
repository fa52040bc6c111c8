"""
Fieldbook Backend — Content Record SQLAlchemy Models
======================================================

What:  ORM models for the content tables (`fieldnotes`, `creativewriting`,
       `recipes`). Every table has the same shape: a few relational metadata
       columns plus the embedded document in the `json` column.
Who:   Queried by the record locator; created by RecordStore.create_tables()
       in tests and local development.

Table Design:
    - id: integer primary key, never exposed to clients
    - user_email: owner identity
    - slug: external lookup key, unique per owner
    - is_public: authoritative visibility flag
    - created: set by the ingestion path, never mutated here
    - json: serialized document (authoritative content)

    UNIQUE (user_email, slug): one record per owner and slug
    INDEX (is_public): anonymous lookups filter on it
    INDEX (created): listings are ordered newest first
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from fieldbook.database import Base


class ContentRecordMixin:
    """Columns shared by every content table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Owner identity (email)",
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Human-readable key, unique per owner",
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Authoritative visibility flag",
    )

    created_at: Mapped[datetime] = mapped_column(
        "created",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the record was created",
    )

    # Text, not JSON: the column holds the serialized document exactly as
    # the ingestion path wrote it. Decoding happens in the shape merger.
    document: Mapped[Any] = mapped_column(
        "json",
        Text,
        nullable=False,
        comment="Serialized document payload",
    )

    @declared_attr.directive
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            UniqueConstraint("user_email", "slug", name=f"uq_{table}_owner_slug"),
            Index(f"idx_{table}_is_public", "is_public"),
            Index(f"idx_{table}_created", "created"),
        )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, owner='{self.user_email}', "
            f"slug='{self.slug}', is_public={self.is_public})>"
        )


class FieldNote(ContentRecordMixin, Base):
    __tablename__ = "fieldnotes"


class CreativeWriting(ContentRecordMixin, Base):
    __tablename__ = "creativewriting"


class Recipe(ContentRecordMixin, Base):
    __tablename__ = "recipes"
