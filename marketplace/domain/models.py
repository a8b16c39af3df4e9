"""
marketplace.domain.models -- Request context and access predicates.

Import pattern::

    from marketplace.domain.models import ProfileContext, is_party
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from marketplace.domain.enums import ProfileType


class _HasParties(Protocol):
    client_id: int
    contractor_id: int


class _HasId(Protocol):
    id: int


# ---------------------------------------------------------------------------
# Caller context (resolved once per API request)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProfileContext:
    """
    The authenticated caller, detached from any database session.
    This is the only identity used for authorization decisions.
    """
    id: int
    type: ProfileType
    first_name: str = ""
    last_name: str = ""
    profession: str = ""

    @property
    def is_client(self) -> bool:
        return self.type is ProfileType.CLIENT

    @classmethod
    def from_row(cls, row: Any) -> "ProfileContext":
        return cls(
            id=row.id,
            type=ProfileType(row.type),
            first_name=row.first_name,
            last_name=row.last_name,
            profession=row.profession,
        )


# ---------------------------------------------------------------------------
# Access predicates (pure)
# ---------------------------------------------------------------------------

def _profile_id(profile: Any) -> Optional[int]:
    if isinstance(profile, int):
        return profile
    return getattr(profile, "id", None)


def is_party(profile: _HasId | int, contract: _HasParties) -> bool:
    """True when ``profile`` is the client or the contractor on ``contract``."""
    pid = _profile_id(profile)
    if pid is None:
        return False
    return pid == contract.client_id or pid == contract.contractor_id


def is_client(profile: _HasId | int, contract: _HasParties) -> bool:
    """True when ``profile`` is the paying side of ``contract``."""
    pid = _profile_id(profile)
    return pid is not None and pid == contract.client_id
