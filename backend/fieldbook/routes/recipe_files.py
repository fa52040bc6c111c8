"""
Fieldbook Backend — Recipe File Route Handlers
================================================

What:  GET /api/recipe-files (list), GET /api/recipe-files/public (shared list)
       and GET /api/recipe-files/{slug} (detail) for recipes still stored as
       JSON files on disk.
Who:   Called by the web client's recipe box for owners whose recipes were
       never moved into the recipes table.

These records are private to their owner: the viewer identity is required
and is also the owner whose files are read. The shared list is the exception;
it needs no identity and reads users/public-recipes.json.

Router order:
    main.py registers this router before the generic /api/{kind} router so
    "recipe-files" is never resolved as a content kind. Within this router
    /public is declared before /{slug} so it is not read as a slug.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from fieldbook.exceptions import BadRequestError
from fieldbook.identity import get_viewer_identity
from fieldbook.schemas.record import ErrorResponse, NormalizedRecord
from fieldbook.services.file_records import FileRecordSource, get_file_records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipe-files", tags=["Recipe Files"])


@router.get(
    "",
    response_model=List[NormalizedRecord],
    responses={
        400: {"description": "Owner identity missing", "model": ErrorResponse},
        500: {"description": "Index or recipe file unreadable", "model": ErrorResponse},
    },
    summary="List the owner's file-backed recipes",
)
async def list_recipe_files(
    viewer: Optional[str] = Depends(get_viewer_identity),
    source: FileRecordSource = Depends(get_file_records),
) -> JSONResponse:
    recipes = await source.list(viewer)
    return JSONResponse(
        content=[recipe.to_response() for recipe in recipes],
        headers={
            "X-Total-Count": str(len(recipes)),
            "Cache-Control": "private, no-cache",
        },
    )


@router.get("/", include_in_schema=False)
async def get_recipe_file_without_slug() -> JSONResponse:
    raise BadRequestError(message="Missing slug parameter", field="slug")


@router.get(
    "/public",
    response_model=List[NormalizedRecord],
    responses={
        500: {"description": "Public index or recipe file unreadable", "model": ErrorResponse},
    },
    summary="List recipes their owners have made public",
)
async def list_public_recipe_files(
    source: FileRecordSource = Depends(get_file_records),
) -> JSONResponse:
    """
    Example:
        GET /api/recipe-files/public
        → [{"title": "Stew", "userEmail": "alice@x.com", "author": "Anonymous",
            "dateAdded": "2024-03-01T00:00:00Z", "isPublic": true, ...}]
    """
    recipes = await source.list_public()
    return JSONResponse(
        content=[recipe.to_response() for recipe in recipes],
        headers={
            "X-Total-Count": str(len(recipes)),
            "Cache-Control": "public, no-cache",
        },
    )


@router.get(
    "/{slug}",
    response_model=NormalizedRecord,
    responses={
        400: {"description": "Owner identity missing or invalid path", "model": ErrorResponse},
        404: {"description": "No such recipe file", "model": ErrorResponse},
        500: {"description": "Recipe file unreadable or corrupt", "model": ErrorResponse},
    },
    summary="Get one file-backed recipe",
)
async def get_recipe_file(
    slug: str,
    viewer: Optional[str] = Depends(get_viewer_identity),
    source: FileRecordSource = Depends(get_file_records),
) -> JSONResponse:
    recipe = await source.get(slug, viewer)
    return JSONResponse(
        content=recipe.to_response(),
        headers={"Cache-Control": "private, no-cache"},
    )
