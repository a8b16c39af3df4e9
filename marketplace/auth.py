"""
Profile authentication for the Contractor Marketplace.

Every request outside ``PUBLIC_PREFIXES`` must carry the caller's profile
id in the ``profile_id`` header (name configurable via ``PROFILE_HEADER``).
The auth middleware in ``marketplace.app`` resolves it to a
``ProfileContext`` and stores it on ``request.state.profile``; requests
whose header is missing or names no profile get a 401 before any handler
runs.  Handlers obtain the caller through the ``current_profile``
dependency and never read the header themselves.
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from marketplace import config
from marketplace.database import get_db
from marketplace.domain.models import ProfileContext
from marketplace.exceptions import AuthenticationError, TransientError
from marketplace.queries import get_profile

logger = logging.getLogger(__name__)

PUBLIC_PREFIXES = ("/health", "/docs", "/redoc", "/openapi.json")


def is_public_path(path: str) -> bool:
    """Match a public prefix exactly or as a whole path segment."""
    return any(path == p or path.startswith(p + "/") for p in PUBLIC_PREFIXES)


def requires_auth(request: Request) -> bool:
    """Return True if this request path needs a resolved profile."""
    return not is_public_path(request.url.path)


def parse_profile_id(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        raise AuthenticationError(f"Missing '{config.PROFILE_HEADER}' header")
    try:
        profile_id = int(raw.strip())
    except ValueError:
        raise AuthenticationError(f"Invalid '{config.PROFILE_HEADER}' header") from None
    if profile_id < 1:
        raise AuthenticationError(f"Invalid '{config.PROFILE_HEADER}' header")
    return profile_id


def resolve_profile(raw: Optional[str]) -> ProfileContext:
    """Resolve a header value to the caller's profile or raise ``AuthenticationError``."""
    profile_id = parse_profile_id(raw)
    db = get_db()
    try:
        row = get_profile(db, profile_id)
        if row is None:
            logger.info("Rejected request for unknown profile %s", profile_id)
            raise AuthenticationError("Unknown profile")
        return ProfileContext.from_row(row)
    except SQLAlchemyError as exc:
        logger.error("Profile lookup failed for %s: %s", profile_id, exc)
        raise TransientError("profile lookup failed", cause=exc) from exc
    finally:
        db.close()


def current_profile(request: Request) -> ProfileContext:
    """FastAPI dependency returning the profile resolved by the middleware."""
    profile = getattr(request.state, "profile", None)
    if profile is None:
        raise AuthenticationError("Not authenticated")
    return profile
