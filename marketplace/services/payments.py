"""
Job payment.

Moves a job's price from the client's balance to the contractor's balance
and marks the job paid, as one all-or-nothing transaction:

  1. the job must exist (``NotFoundError``)
  2. the caller must be the client on the job's contract (``NotJobClientError``)
  3. the job must not be paid yet (``AlreadyPaidError``)
  4. the client balance must cover the price (``InsufficientFundsError``)

Concurrent payers race on the version columns of the job and profile rows.
The loser's flush fails, the transaction is retried from the top and then
sees ``paid == True``, so a job is paid at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.database import Job, Profile, run_in_transaction, utcnow
from marketplace.domain.models import is_client
from marketplace.exceptions import (
    AlreadyPaidError, ForbiddenError, InsufficientFundsError, NotFoundError,
    NotJobClientError,
)
from marketplace.metrics import record_payment
from marketplace.queries import get_job_with_contract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentReceipt:
    job_id: int
    client_id: int
    contractor_id: int
    amount: Decimal
    client_balance: Decimal
    contractor_balance: Decimal
    payment_date: datetime


def pay_job(actor_profile_id: int, job_id: int) -> PaymentReceipt:
    """Pay ``job_id`` on behalf of ``actor_profile_id``.

    Raises ``NotFoundError``, a ``ForbiddenError`` subclass, or
    ``TransientError`` when the store fails.  Nothing is persisted unless
    the receipt is returned.
    """
    try:
        receipt = run_in_transaction(
            lambda session: _pay(session, actor_profile_id, job_id),
            name=f"pay_job[{job_id}]",
        )
    except ForbiddenError as exc:
        record_payment(False)
        logger.info(
            "Payment of job %s by profile %s rejected: %s",
            job_id, actor_profile_id, exc.code,
        )
        raise

    record_payment(True)
    logger.info(
        "Job %s paid: %s moved from profile %s to profile %s",
        receipt.job_id, receipt.amount, receipt.client_id, receipt.contractor_id,
    )
    return receipt


def _pay(session: Session, actor_profile_id: int, job_id: int) -> PaymentReceipt:
    job = get_job_with_contract(session, job_id)
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")

    contract = job.contract
    if not is_client(actor_profile_id, contract):
        raise NotJobClientError(actor_profile_id, job_id)
    if job.paid:
        raise AlreadyPaidError(job_id)

    client = session.get(Profile, contract.client_id)
    contractor = session.get(Profile, contract.contractor_id)
    price = job.price
    if client.balance < price:
        raise InsufficientFundsError(client.id, client.balance, price)

    _debit(client, price)
    _credit(contractor, price)
    paid_at = _mark_paid(job)
    session.flush()

    return PaymentReceipt(
        job_id=job.id,
        client_id=client.id,
        contractor_id=contractor.id,
        amount=price,
        client_balance=client.balance,
        contractor_balance=contractor.balance,
        payment_date=paid_at,
    )


def _debit(profile: Profile, amount: Decimal) -> None:
    profile.balance = profile.balance - amount


def _credit(profile: Profile, amount: Decimal) -> None:
    profile.balance = profile.balance + amount


def _mark_paid(job: Job) -> datetime:
    now = utcnow()
    job.paid = True
    job.payment_date = now
    return now
