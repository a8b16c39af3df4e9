"""
Balance deposits, capped by outstanding debt.

A client may deposit at most ``MAX_DEPOSIT_RATIO`` (a quarter by default) of
the total price of their unpaid jobs.  A client with no unpaid jobs cannot
deposit at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Any

from sqlalchemy.orm import Session

from marketplace import config
from marketplace.database import Profile, run_in_transaction
from marketplace.domain.models import ProfileContext
from marketplace.exceptions import (
    DepositCapExceededError, ForbiddenError, InvalidInputError,
    NoDebtCapacityError, NotAccountOwnerError, NotFoundError,
)
from marketplace.metrics import record_deposit
from marketplace.queries import sum_unpaid_debt

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
# Largest value a Numeric(12, 2) balance column holds
_MAX_AMOUNT = Decimal("9999999999.99")


@dataclass(frozen=True)
class DepositResult:
    profile_id: int
    amount: Decimal
    balance: Decimal
    outstanding_debt: Decimal
    cap: Decimal


def parse_amount(raw: Any) -> Decimal:
    """Parse a deposit amount: positive, finite, at most two decimals."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidInputError("Deposit amount is required")
    if isinstance(raw, bool):
        raise InvalidInputError(f"Invalid deposit amount: {raw!r}")
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        raise InvalidInputError(f"Invalid deposit amount: {raw!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(f"Deposit amount must be a positive number, got {raw!r}")
    if amount > _MAX_AMOUNT:
        raise InvalidInputError(f"Deposit amount is too large: {raw!r}")
    try:
        cents = amount.quantize(_CENT)
    except InvalidOperation:
        raise InvalidInputError(f"Invalid deposit amount: {raw!r}") from None
    if amount != cents:
        raise InvalidInputError(f"Deposit amount has more than two decimals: {raw!r}")
    return cents


def check_account_owner(caller: ProfileContext, account_id: int) -> None:
    """Deposits go only into the caller's own account."""
    if caller.id != account_id:
        raise NotAccountOwnerError(
            f"Profile {caller.id} may not deposit into profile {account_id}",
            profile_id=caller.id,
        )


def deposit(actor_client_id: int, amount: Decimal) -> DepositResult:
    """Add ``amount`` to the client's balance if it is within the debt cap."""
    try:
        result = run_in_transaction(
            lambda session: _deposit(session, actor_client_id, amount),
            name=f"deposit[{actor_client_id}]",
        )
    except ForbiddenError as exc:
        record_deposit(False)
        logger.info(
            "Deposit of %s into profile %s rejected: %s",
            amount, actor_client_id, exc.code,
        )
        raise

    record_deposit(True)
    logger.info(
        "Deposited %s into profile %s (debt %s, cap %s)",
        result.amount, result.profile_id, result.outstanding_debt, result.cap,
    )
    return result


def _deposit(session: Session, client_id: int, amount: Decimal) -> DepositResult:
    profile = session.get(Profile, client_id)
    if profile is None:
        raise NotFoundError(f"Profile {client_id} not found")

    debt = sum_unpaid_debt(session, client_id)
    if debt <= 0:
        raise NoDebtCapacityError(client_id)

    # amount has whole cents, so comparing against the cap floored to a cent is exact
    cap = (config.MAX_DEPOSIT_RATIO * debt).quantize(_CENT, rounding=ROUND_DOWN)
    if amount > cap:
        raise DepositCapExceededError(client_id, amount, cap)

    # The version guard on the profile row catches a concurrent payment,
    # which changes both this balance and the debt the cap was computed from.
    profile.balance = profile.balance + amount
    session.flush()

    return DepositResult(
        profile_id=profile.id,
        amount=amount,
        balance=profile.balance,
        outstanding_debt=debt,
        cap=cap,
    )
