"""
Fieldbook Backend — Viewer Identity Dependency
================================================

What:  Supplies the identity of the requesting viewer to route handlers.
How:   Reads the `ownerIdentity` query parameter (older clients send
       `userEmail`). Authentication happens upstream; this service trusts the
       value it is given.

Anonymous requests:
    No parameter, a blank value, or the literal strings "undefined" / "null"
    (what older web clients send when no user is signed in) all mean the
    request is anonymous and the dependency returns None.
"""

from typing import Optional

from fastapi import Query

ANONYMOUS_SENTINELS = frozenset({"", "undefined", "null"})


def normalize_identity(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value.lower() in ANONYMOUS_SENTINELS:
        return None
    return value


def get_viewer_identity(
    owner_identity: Optional[str] = Query(
        default=None,
        alias="ownerIdentity",
        description="Identity of the requesting viewer (omit for anonymous access)",
    ),
    user_email: Optional[str] = Query(
        default=None,
        alias="userEmail",
        description="Deprecated alias of ownerIdentity",
        deprecated=True,
    ),
) -> Optional[str]:
    """FastAPI dependency: the viewer's identity, or None when anonymous."""
    return normalize_identity(owner_identity) or normalize_identity(user_email)
