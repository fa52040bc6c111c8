"""
Fieldbook Backend — Content Record Route Handlers
===================================================

What:  GET /api/{kind} (list) and GET /api/{kind}/{slug} (detail) for every
       table-backed content kind (fieldnotes, creativewriting, recipes).
How:   Resolves the kind, takes the viewer from the identity dependency and
       a session from the store dependency, then delegates to RecordService.
Who:   Called by the web client's field notes, creative writing, and recipe
       pages.

Caching:
    Responses depend on the viewer, so they are marked private and must be
    revalidated; shared caches never store them.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.database import get_db_session
from fieldbook.exceptions import BadRequestError
from fieldbook.identity import get_viewer_identity
from fieldbook.schemas.record import ErrorResponse, NormalizedRecord
from fieldbook.services.record_kinds import get_record_kind
from fieldbook.services.record_service import RecordService, get_record_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Records"])

CACHE_CONTROL = "private, no-cache"


@router.get(
    "/{kind}",
    response_model=List[NormalizedRecord],
    responses={
        200: {"description": "Records visible to the viewer, newest first"},
        404: {"description": "Unknown content kind", "model": ErrorResponse},
        500: {"description": "Store failure or corrupt record", "model": ErrorResponse},
    },
    summary="List content records",
    description=(
        "Returns the viewer's own records of the given kind. With includePublic=true "
        "public records of other owners are included; anonymous viewers only ever "
        "see public records. The X-Total-Count header carries the number of items."
    ),
)
async def list_records(
    kind: str,
    include_public: bool = Query(
        default=False,
        alias="includePublic",
        description="Also include public records of other owners",
    ),
    viewer: Optional[str] = Depends(get_viewer_identity),
    db: AsyncSession = Depends(get_db_session),
    service: RecordService = Depends(get_record_service),
) -> JSONResponse:
    record_kind = get_record_kind(kind)
    records = await service.list_records(
        db, record_kind, viewer, include_public=include_public
    )
    return JSONResponse(
        content=[record.to_response() for record in records],
        headers={
            "X-Total-Count": str(len(records)),
            "Cache-Control": CACHE_CONTROL,
        },
    )


@router.get("/{kind}/", include_in_schema=False)
async def get_record_without_slug(kind: str) -> JSONResponse:
    """`/api/{kind}/` is a lookup with an empty slug, not the listing."""
    get_record_kind(kind)
    raise BadRequestError(message="Missing slug parameter", field="slug")


@router.get(
    "/{kind}/{slug}",
    response_model=NormalizedRecord,
    responses={
        200: {"description": "The normalized record"},
        400: {"description": "Missing slug", "model": ErrorResponse},
        404: {"description": "No record visible to this viewer", "model": ErrorResponse},
        500: {"description": "Store failure or corrupt record", "model": ErrorResponse},
    },
    summary="Get one content record by slug",
    description=(
        "Owners see their own record whether or not it is public. Anonymous viewers "
        "see public records only; a private record is reported as not found."
    ),
)
async def get_record(
    kind: str,
    slug: str,
    viewer: Optional[str] = Depends(get_viewer_identity),
    db: AsyncSession = Depends(get_db_session),
    service: RecordService = Depends(get_record_service),
) -> JSONResponse:
    """
    Fetch one record.

    Example:
        GET /api/fieldnotes/trip-1?ownerIdentity=bob@x.com
        → {"title": "Trip", "author": "bob@x.com", "personalNotes": "",
           "isFavorite": false, "dateAdded": "...", "isPublic": false}
    """
    record_kind = get_record_kind(kind)
    record = await service.get_record(db, record_kind, slug, viewer)
    return JSONResponse(
        content=record.to_response(),
        headers={"Cache-Control": CACHE_CONTROL},
    )
