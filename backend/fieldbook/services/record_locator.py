"""
Fieldbook Backend — Record Locator
====================================

What:  Resolves (kind, slug, viewer) to at most one stored record under the
       visibility rules, and lists the records a viewer may see.
How:   One SELECT per call against the kind's table. The session is supplied
       by the caller (one per request); the locator never commits.
Who:   Called by RecordService.

Visibility Rules:
    viewer present   user_email = :viewer AND slug = :slug
                     (the public flag is irrelevant to the owner)
    viewer absent    is_public = true AND slug = :slug, any owner; if several
                     owners published the same slug, the newest one wins

Query plan (anonymous lookup):
    SELECT * FROM fieldnotes WHERE is_public AND slug = :slug
    ORDER BY created DESC, id DESC LIMIT 1
    → idx_fieldnotes_is_public narrows the scan
"""

import logging
from typing import List, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.exceptions import BadRequestError, FieldbookError, NotFoundError, StoreUnavailableError
from fieldbook.schemas.record import StoredRecord
from fieldbook.services.record_kinds import RecordKind

logger = logging.getLogger(__name__)


class RecordLocator:
    """
    Read-only lookups against the content tables.

    Error Handling Strategy:
        Our own exceptions propagate as-is. Anything else raised while talking
        to the store (connection refused, pool timeout, SQL error) is logged
        with the requested key and viewer, then reported as
        StoreUnavailableError carrying the kind's short message.
    """

    async def locate(
        self,
        db: AsyncSession,
        kind: RecordKind,
        slug: Optional[str],
        viewer: Optional[str],
    ) -> StoredRecord:
        """
        Find the single record visible to `viewer` under `slug`.

        Raises:
            BadRequestError:        Slug missing or blank (before any store access)
            NotFoundError:          Nothing visible to this viewer
            StoreUnavailableError:  The query failed
        """
        if slug is None or not slug.strip():
            raise BadRequestError(message="Missing slug parameter", field="slug")

        model = kind.model
        query = select(model).where(model.slug == slug)
        if viewer:
            query = query.where(model.user_email == viewer)
        else:
            query = query.where(model.is_public.is_(True))
        query = query.order_by(desc(model.created_at), desc(model.id)).limit(1)

        try:
            result = await db.execute(query)
            row = result.scalars().first()

            if row is None:
                raise NotFoundError(
                    message=kind.not_found_message,
                    context={"kind": kind.name, "slug": slug, "viewer": viewer},
                )

            return StoredRecord.from_row(row)

        except FieldbookError:
            raise
        except Exception as e:
            logger.error(
                "Store error reading %s/%s for viewer %s: %s",
                kind.name, slug, viewer or "<anonymous>", type(e).__name__,
            )
            raise StoreUnavailableError(
                message=kind.read_failure_message,
                context={
                    "kind": kind.name,
                    "slug": slug,
                    "viewer": viewer,
                    "error_type": type(e).__name__,
                },
            ) from e

    async def list(
        self,
        db: AsyncSession,
        kind: RecordKind,
        viewer: Optional[str],
        include_public: bool = False,
    ) -> List[StoredRecord]:
        """
        List the records a viewer may see, newest first.

        viewer present:  the viewer's own records, plus every public record
                         of other owners when `include_public` is set
        viewer absent:   public records only
        """
        model = kind.model
        query = select(model)
        if viewer and include_public:
            query = query.where(or_(model.user_email == viewer, model.is_public.is_(True)))
        elif viewer:
            query = query.where(model.user_email == viewer)
        else:
            query = query.where(model.is_public.is_(True))
        query = query.order_by(desc(model.created_at), desc(model.id))

        try:
            result = await db.execute(query)
            return [StoredRecord.from_row(row) for row in result.scalars().all()]
        except Exception as e:
            logger.error(
                "Store error listing %s for viewer %s: %s",
                kind.name, viewer or "<anonymous>", type(e).__name__,
            )
            raise StoreUnavailableError(
                message=kind.list_failure_message,
                context={
                    "kind": kind.name,
                    "viewer": viewer,
                    "include_public": include_public,
                    "error_type": type(e).__name__,
                },
            ) from e


record_locator = RecordLocator()
