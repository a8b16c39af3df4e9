"""
Typed exceptions for the marketplace service.

Every error carries a machine-readable ``code`` and the HTTP status it maps
to, so handlers catch by type and the API layer never parses messages::

    MarketplaceError
    +-- AuthenticationError        401
    +-- InvalidInputError          400
    +-- NotFoundError              404
    +-- ForbiddenError             403
    |   +-- NotJobClientError
    |   +-- AlreadyPaidError
    |   +-- InsufficientFundsError
    |   +-- NotAccountOwnerError
    |   +-- NoDebtCapacityError
    |   +-- DepositCapExceededError
    +-- TransientError             500

``NotFoundError`` deliberately covers both "absent" and "not visible to the
caller" so that responses do not leak whether an entity exists.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""

    code: str = "MARKETPLACE_ERROR"
    status_code: int = 500

    def __init__(self, message: str = "", **data: Any):
        self.message = message or self.__class__.__doc__ or self.code
        self.data: Dict[str, Any] = data
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class AuthenticationError(MarketplaceError):
    """Caller profile could not be resolved."""

    code = "UNAUTHENTICATED"
    status_code = 401


class InvalidInputError(MarketplaceError):
    """Malformed request input."""

    code = "INVALID_INPUT"
    status_code = 400


class NotFoundError(MarketplaceError):
    """Entity not found."""

    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(MarketplaceError):
    """Operation not permitted."""

    code = "FORBIDDEN"
    status_code = 403


class NotJobClientError(ForbiddenError):
    """Only the client on the contract may pay its jobs."""

    code = "NOT_JOB_CLIENT"

    def __init__(self, profile_id: int, job_id: int):
        self.profile_id = profile_id
        self.job_id = job_id
        super().__init__(
            f"Profile {profile_id} is not the client for job {job_id}",
            profile_id=profile_id, job_id=job_id,
        )


class AlreadyPaidError(ForbiddenError):
    """Job has already been paid."""

    code = "ALREADY_PAID"

    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is already paid", job_id=job_id)


class InsufficientFundsError(ForbiddenError):
    """Client balance does not cover the job price."""

    code = "INSUFFICIENT_FUNDS"

    def __init__(self, profile_id: int, balance: Decimal, price: Decimal):
        self.profile_id = profile_id
        self.balance = balance
        self.price = price
        super().__init__(
            f"Balance {balance} of profile {profile_id} does not cover price {price}",
            profile_id=profile_id,
        )


class NotAccountOwnerError(ForbiddenError):
    """Deposits are only accepted into the caller's own account."""

    code = "NOT_ACCOUNT_OWNER"


class NoDebtCapacityError(ForbiddenError):
    """Client has no unpaid jobs, so no deposit is allowed."""

    code = "NO_DEBT_CAPACITY"

    def __init__(self, profile_id: int):
        self.profile_id = profile_id
        super().__init__(
            f"Profile {profile_id} has no outstanding debt to deposit against",
            profile_id=profile_id,
        )


class DepositCapExceededError(ForbiddenError):
    """Deposit exceeds the allowed fraction of outstanding debt."""

    code = "DEPOSIT_CAP_EXCEEDED"

    def __init__(self, profile_id: int, amount: Decimal, cap: Decimal):
        self.profile_id = profile_id
        self.amount = amount
        self.cap = cap
        super().__init__(
            f"Deposit {amount} exceeds cap {cap} for profile {profile_id}",
            profile_id=profile_id,
        )


class TransientError(MarketplaceError):
    """Store failure; the transaction was rolled back and may be retried."""

    code = "TRANSIENT_FAILURE"
    status_code = 500

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> dict:
        # Internal detail stays in the server log
        return {"detail": "Internal error, please retry", "code": self.code}
