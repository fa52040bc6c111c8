"""
Fieldbook Backend — Record Service (Read Path Orchestrator)
=============================================================

What:  Composes the locator and the shape merger into the two read operations
       the API exposes: fetch one record, list records.
How:   Locate (visibility rules) → merge (normalization) → return the
       NormalizedRecord. Exceptions propagate unchanged to the global handlers.
Who:   Called by the record route handlers.

Flow (GET /api/{kind}/{slug}):
    ┌───────────┐    ┌───────────────┐    ┌───────────────┐
    │ Identity  │───▶│ RecordLocator │───▶│ Shape Merger  │───▶ NormalizedRecord
    │ (Depends) │    │ (one SELECT)  │    │ (decode+merge)│
    └───────────┘    └───────────────┘    └───────────────┘

RecordService keeps no per-request state: it receives the session for each
call, the same way the locator does.
"""

import logging
from typing import List, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.exceptions import CorruptRecordError
from fieldbook.schemas.record import NormalizedRecord
from fieldbook.services.record_kinds import RecordKind
from fieldbook.services.record_locator import RecordLocator, record_locator
from fieldbook.services.shape_merger import merge_record

logger = logging.getLogger(__name__)


class RecordService:
    """
    Read operations over the relational content tables.

    Responsibilities:
        - get_record():   single lookup by slug under visibility rules
        - list_records(): every record visible to the viewer, newest first

    One instance lives on app.state (see create_app); routes reach it through
    get_record_service().
    """

    def __init__(self, locator: RecordLocator = record_locator, fallback_author: str = "Anonymous"):
        self.locator = locator
        self.fallback_author = fallback_author

    async def get_record(
        self,
        db: AsyncSession,
        kind: RecordKind,
        slug: Optional[str],
        viewer: Optional[str],
    ) -> NormalizedRecord:
        """
        Fetch and normalize one record.

        Raises:
            BadRequestError:        Blank slug
            NotFoundError:          Nothing visible to this viewer
            CorruptRecordError:     Stored document is not a JSON object
            StoreUnavailableError:  Store operation failed
        """
        record = await self.locator.locate(db, kind, slug, viewer)
        normalized = merge_record(
            record,
            viewer,
            fallback_author=self.fallback_author,
            corrupt_message=kind.read_failure_message,
        )
        logger.debug("Served %s/%s to %s", kind.name, slug, viewer or "<anonymous>")
        return normalized

    async def list_records(
        self,
        db: AsyncSession,
        kind: RecordKind,
        viewer: Optional[str],
        include_public: bool = False,
    ) -> List[NormalizedRecord]:
        """
        Fetch and normalize every record visible to the viewer.

        Each item carries its owner as `userEmail` so mixed owner and public
        listings can be told apart; the row id stays internal.

        A single corrupt document fails the whole listing with the kind's
        list message; the listing never returns partial data.
        """
        records = await self.locator.list(db, kind, viewer, include_public=include_public)
        normalized: List[NormalizedRecord] = []
        for record in records:
            try:
                merged = merge_record(
                    record,
                    viewer,
                    fallback_author=self.fallback_author,
                    corrupt_message=kind.list_failure_message,
                )
            except CorruptRecordError:
                logger.error(
                    "Corrupt %s record %s (owner %s) while listing for %s",
                    kind.name, record.slug, record.owner_email, viewer or "<anonymous>",
                )
                raise
            normalized.append(merged.model_copy(update={"userEmail": record.owner_email}))
        return normalized


def get_record_service(request: Request) -> RecordService:
    """FastAPI dependency returning the RecordService attached to the app."""
    service: Optional[RecordService] = getattr(request.app.state, "record_service", None)
    if service is None:
        raise RuntimeError("Record service is not configured on this application")
    return service
