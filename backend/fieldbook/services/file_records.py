"""
Fieldbook Backend — File-backed Recipe Records
================================================

What:  Read-only access to the older recipe records kept as individual JSON
       files, plus the per-owner index that lists them and the shared index of
       recipes their owners made public.
How:   Files are read with aiofiles so the event loop is never blocked. Each
       file becomes a StoredRecord (file mtime as its creation time, public
       only when read through the shared index) and goes through the same
       shape merger as table rows.
Who:   Called by the recipe-files route handlers.

Storage Layout:
    <storage_root>/
    ├── recipes/
    │   └── <owner email>/
    │       └── <slug>.json                  full recipe document
    └── users/
        ├── <sanitized owner>-recipes.json   {"recipes": [{slug, dateAdded,
        │                                     personalNotes, isFavorite}]}
        └── public-recipes.json              [{slug, userEmail, dateAdded}]

    The owner email is sanitized for the index file name by replacing "@"
    and "." with "_" (alice@x.com → alice_x_com-recipes.json).

Security:
    Every path is resolved and must stay inside the storage root; a slug or
    owner containing "../" is rejected with BadRequestError.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os
from fastapi import Request

from fieldbook.exceptions import (
    BadRequestError,
    CorruptRecordError,
    NotFoundError,
    StoreUnavailableError,
)
from fieldbook.schemas.record import NormalizedRecord, StoredRecord
from fieldbook.services.shape_merger import is_absent, merge_record

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Recipe not found"
READ_FAILURE_MESSAGE = "Failed to read recipe"
LIST_FAILURE_MESSAGE = "Failed to read recipes"
PUBLIC_LIST_FAILURE_MESSAGE = "Failed to read public recipes"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def sanitize_owner(owner_email: str) -> str:
    return owner_email.replace("@", "_").replace(".", "_")


def date_sort_key(value: Any) -> datetime:
    """
    Sort key for dateAdded values: ISO 8601 strings or epoch milliseconds.
    Anything unparseable sorts last.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return _OLDEST
    if not isinstance(value, str):
        return _OLDEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FileRecordSource:
    """
    Read-only source of file-backed recipe records.

    Example:
        source = FileRecordSource("./data")
        recipe = await source.get("pancakes", viewer="alice@x.com")
        recipes = await source.list("alice@x.com")
        shared = await source.list_public()
    """

    def __init__(self, storage_root: str, fallback_author: str = "Anonymous"):
        self.storage_root = Path(storage_root).resolve()
        self.fallback_author = fallback_author
        logger.info("File-backed records initialized (root=%s)", self.storage_root)

    # ── Paths ─────────────────────────────────────────────────────────────
    def _inside_root(self, *parts: str) -> Path:
        path = self.storage_root.joinpath(*parts).resolve()
        if path != self.storage_root and self.storage_root not in path.parents:
            raise BadRequestError(
                message="Invalid record path",
                context={"parts": list(parts)},
            )
        return path

    def record_path(self, owner_email: str, slug: str) -> Path:
        return self._inside_root("recipes", owner_email, f"{slug}.json")

    def index_path(self, owner_email: str) -> Path:
        return self._inside_root("users", f"{sanitize_owner(owner_email)}-recipes.json")

    def public_index_path(self) -> Path:
        return self._inside_root("users", "public-recipes.json")

    async def available(self) -> bool:
        """True when the storage root exists (health checks)."""
        return await aiofiles.os.path.isdir(self.storage_root)

    # ── Reads ─────────────────────────────────────────────────────────────
    async def read(self, slug: Optional[str], owner_email: Optional[str]) -> StoredRecord:
        """
        Read one recipe file as a StoredRecord (document left undecoded).

        Raises:
            BadRequestError:        Blank slug, missing owner, or path escape
            NotFoundError:          No such file
            StoreUnavailableError:  The file exists but could not be read
        """
        if slug is None or not slug.strip():
            raise BadRequestError(message="Missing slug parameter", field="slug")
        if not owner_email:
            raise BadRequestError(message="User email required", field="ownerIdentity")

        path = self.record_path(owner_email, slug)
        try:
            stat = await aiofiles.os.stat(path)
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            raise NotFoundError(
                message=NOT_FOUND_MESSAGE,
                context={"slug": slug, "owner": owner_email},
            )
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read recipe file %s: %s", path, type(e).__name__)
            raise StoreUnavailableError(
                message=READ_FAILURE_MESSAGE,
                context={"slug": slug, "owner": owner_email, "error_type": type(e).__name__},
            ) from e

        return StoredRecord(
            identity=str(path.relative_to(self.storage_root)),
            owner_email=owner_email,
            slug=slug,
            is_public=False,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            document=raw,
        )

    async def get(self, slug: Optional[str], viewer: Optional[str]) -> NormalizedRecord:
        """Read and normalize one recipe owned by the viewer."""
        record = await self.read(slug, viewer)
        return merge_record(
            record,
            viewer,
            fallback_author=self.fallback_author,
            corrupt_message=READ_FAILURE_MESSAGE,
        )

    async def _read_index(self, owner_email: str) -> List[Dict[str, Any]]:
        path = self.index_path(owner_email)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read recipe index %s: %s", path, type(e).__name__)
            raise StoreUnavailableError(
                message=LIST_FAILURE_MESSAGE,
                context={"owner": owner_email, "error_type": type(e).__name__},
            ) from e

        try:
            index = json.loads(raw)
        except ValueError as e:
            raise CorruptRecordError(
                message=LIST_FAILURE_MESSAGE,
                context={"owner": owner_email, "reason": f"invalid index JSON: {e}"},
            ) from e

        refs = index.get("recipes") if isinstance(index, dict) else None
        if not isinstance(refs, list):
            raise CorruptRecordError(
                message=LIST_FAILURE_MESSAGE,
                context={"owner": owner_email, "reason": "index has no recipes list"},
            )
        return [
            ref for ref in refs
            if isinstance(ref, dict) and isinstance(ref.get("slug"), str) and ref["slug"]
        ]

    async def list(self, owner_email: Optional[str]) -> List[NormalizedRecord]:
        """
        List the owner's recipes from their index file, newest dateAdded first.

        Index entries override personalNotes, isFavorite, and dateAdded of the
        recipe file, and each item carries the owner as `userEmail`. Entries
        whose file is gone are skipped.
        """
        if not owner_email:
            raise BadRequestError(message="User email required", field="ownerIdentity")

        recipes: List[NormalizedRecord] = []
        for ref in await self._read_index(owner_email):
            slug = ref["slug"]
            try:
                record = await self.read(slug, owner_email)
            except NotFoundError:
                logger.warning("Index for %s lists missing recipe %s", owner_email, slug)
                continue
            except BadRequestError:
                logger.warning("Index for %s lists invalid recipe slug %r", owner_email, slug)
                continue

            normalized = merge_record(
                record,
                owner_email,
                fallback_author=self.fallback_author,
                corrupt_message=LIST_FAILURE_MESSAGE,
            )
            overrides: Dict[str, Any] = {
                "personal_notes": ref.get("personalNotes") or "",
                "is_favorite": bool(ref.get("isFavorite") or False),
                "userEmail": owner_email,
            }
            if not is_absent(ref.get("dateAdded")):
                overrides["date_added"] = ref["dateAdded"]
            recipes.append(normalized.model_copy(update=overrides))

        recipes.sort(key=lambda r: date_sort_key(r.date_added), reverse=True)
        return recipes

    async def _read_public_index(self) -> List[Dict[str, Any]]:
        path = self.public_index_path()
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read public recipe index %s: %s", path, type(e).__name__)
            raise StoreUnavailableError(
                message=PUBLIC_LIST_FAILURE_MESSAGE,
                context={"error_type": type(e).__name__},
            ) from e

        try:
            refs = json.loads(raw)
        except ValueError as e:
            raise CorruptRecordError(
                message=PUBLIC_LIST_FAILURE_MESSAGE,
                context={"reason": f"invalid public index JSON: {e}"},
            ) from e

        if not isinstance(refs, list):
            raise CorruptRecordError(
                message=PUBLIC_LIST_FAILURE_MESSAGE,
                context={"reason": "public index is not a list"},
            )
        return [
            ref for ref in refs
            if isinstance(ref, dict)
            and isinstance(ref.get("slug"), str) and ref["slug"]
            and isinstance(ref.get("userEmail"), str) and ref["userEmail"]
        ]

    async def list_public(self) -> List[NormalizedRecord]:
        """
        List every recipe shared through users/public-recipes.json, newest first.

        The shared index is a JSON array of {slug, userEmail, dateAdded}. Each
        entry's dateAdded replaces the file's, and its userEmail is added so
        the client can attribute the recipe. No viewer identity is needed.
        """
        recipes: List[NormalizedRecord] = []
        for ref in await self._read_public_index():
            slug, owner_email = ref["slug"], ref["userEmail"]
            try:
                record = await self.read(slug, owner_email)
            except NotFoundError:
                logger.warning("Public index lists missing recipe %s/%s", owner_email, slug)
                continue
            except BadRequestError:
                logger.warning("Public index lists invalid recipe %r/%r", owner_email, slug)
                continue

            normalized = merge_record(
                record.model_copy(update={"is_public": True}),
                None,
                fallback_author=self.fallback_author,
                corrupt_message=PUBLIC_LIST_FAILURE_MESSAGE,
            )
            overrides: Dict[str, Any] = {"userEmail": owner_email}
            if not is_absent(ref.get("dateAdded")):
                overrides["date_added"] = ref["dateAdded"]
            recipes.append(normalized.model_copy(update=overrides))

        recipes.sort(key=lambda r: date_sort_key(r.date_added), reverse=True)
        return recipes


# ── Dependencies ──────────────────────────────────────────────────────────
def get_file_records(request: Request) -> FileRecordSource:
    """FastAPI dependency returning the file-backed source attached to the app."""
    source: Optional[FileRecordSource] = getattr(request.app.state, "file_records", None)
    if source is None:
        raise RuntimeError("File-backed records are not configured on this application")
    return source
