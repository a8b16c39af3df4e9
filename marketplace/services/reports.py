"""
Admin reports over paid jobs within a time window.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from marketplace import config
from marketplace.database import run_in_transaction
from marketplace.domain.enums import ReportGrouping
from marketplace.exceptions import InvalidInputError, NotFoundError
from marketplace.queries import PaidSum, top_by_paid_sum

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------

def _parse_instant(raw: Optional[str], name: str) -> Tuple[datetime, bool]:
    """Return (naive UTC datetime, was_date_only)."""
    if raw is None or not str(raw).strip():
        raise InvalidInputError(f"'{name}' is required")
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInputError(f"'{name}' is not an ISO-8601 date: {raw!r}") from None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value, len(text) == 10


def parse_window(start: Optional[str], end: Optional[str]) -> Tuple[datetime, datetime]:
    """Parse an inclusive ``[start, end]`` window.

    A date-only ``end`` covers that whole day.
    """
    start_at, _ = _parse_instant(start, "start")
    end_at, end_is_date = _parse_instant(end, "end")
    if end_is_date:
        end_at = end_at + timedelta(days=1) - timedelta(microseconds=1)
    if start_at > end_at:
        raise InvalidInputError("'start' must not be after 'end'")
    return start_at, end_at


def parse_limit(raw: Any) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return config.BEST_CLIENTS_DEFAULT_LIMIT
    try:
        limit = int(str(raw).strip())
    except ValueError:
        raise InvalidInputError(f"'limit' must be an integer: {raw!r}") from None
    if limit < 1 or limit > config.BEST_CLIENTS_MAX_LIMIT:
        raise InvalidInputError(
            f"'limit' must be between 1 and {config.BEST_CLIENTS_MAX_LIMIT}"
        )
    return limit


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def best_profession(start: datetime, end: datetime) -> PaidSum:
    """Contractor profession that earned the most in the window."""
    rows = run_in_transaction(
        lambda session: top_by_paid_sum(session, ReportGrouping.PROFESSION, start, end, 1),
        name="best_profession",
    )
    if not rows:
        raise NotFoundError("No paid jobs in the requested window")
    return rows[0]


def best_clients(start: datetime, end: datetime, limit: Optional[int] = None) -> List[PaidSum]:
    """Clients who paid the most in the window, highest first."""
    limit = limit or config.BEST_CLIENTS_DEFAULT_LIMIT
    rows = run_in_transaction(
        lambda session: top_by_paid_sum(session, ReportGrouping.CLIENT, start, end, limit),
        name="best_clients",
    )
    if not rows:
        raise NotFoundError("No paid jobs in the requested window")
    logger.debug("best_clients %s..%s limit=%d -> %d rows", start, end, limit, len(rows))
    return rows
