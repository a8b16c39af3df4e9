"""
Parameterised store queries.

Every read the API and the money-movement services need goes through one of
these functions, so the transfer rules never depend on how a query is
spelled for a particular backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from marketplace.database import Contract, Job, Profile
from marketplace.domain.enums import ContractStatus, ReportGrouping


def _party_clause(profile_id: int):
    return or_(Contract.client_id == profile_id, Contract.contractor_id == profile_id)


# ---------------------------------------------------------------------------
# Scoped lookups
# ---------------------------------------------------------------------------

def get_profile(db: Session, profile_id: int) -> Optional[Profile]:
    return db.get(Profile, profile_id)


def get_contract(db: Session, contract_id: int) -> Optional[Contract]:
    return db.get(Contract, contract_id)


def find_active_contracts(db: Session, profile_id: int) -> List[Contract]:
    """Non-terminated contracts where the profile is a party."""
    active = [s.value for s in ContractStatus if s.is_active]
    return list(db.scalars(
        select(Contract)
        .where(Contract.status.in_(active), _party_clause(profile_id))
        .order_by(Contract.id)
    ))


def find_unpaid_jobs(db: Session, profile_id: int) -> List[Job]:
    """Unpaid jobs on in-progress contracts where the profile is a party."""
    return list(db.scalars(
        select(Job)
        .join(Contract, Job.contract_id == Contract.id)
        .where(
            Job.paid.is_(False),
            Contract.status == ContractStatus.IN_PROGRESS.value,
            _party_clause(profile_id),
        )
        .order_by(Job.id)
    ))


def get_job_with_contract(db: Session, job_id: int) -> Optional[Job]:
    return db.scalars(
        select(Job).options(joinedload(Job.contract)).where(Job.id == job_id)
    ).first()


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def sum_unpaid_debt(db: Session, client_id: int) -> Decimal:
    """Total price of unpaid jobs on contracts where the profile is the client."""
    total = db.scalar(
        select(func.coalesce(func.sum(Job.price), 0))
        .select_from(Job)
        .join(Contract, Job.contract_id == Contract.id)
        .where(Contract.client_id == client_id, Job.paid.is_(False))
    )
    return _money(total)


@dataclass(frozen=True)
class PaidSum:
    """One group of a paid-job report."""
    key: str | int
    total: Decimal
    label: str = ""


def top_by_paid_sum(
    db: Session,
    grouping: ReportGrouping,
    start: datetime,
    end: datetime,
    limit: int,
) -> List[PaidSum]:
    """Groups ranked by the sum of prices of jobs paid within ``[start, end]``.

    Ties are ordered by the group key ascending so results are stable.
    """
    total = func.sum(Job.price).label("total")
    paid_in_window = (
        Job.paid.is_(True),
        Job.payment_date >= start,
        Job.payment_date <= end,
    )

    if grouping is ReportGrouping.PROFESSION:
        stmt = (
            select(Profile.profession, total)
            .select_from(Profile)
            .join(Contract, Contract.contractor_id == Profile.id)
            .join(Job, Job.contract_id == Contract.id)
            .where(*paid_in_window)
            .group_by(Profile.profession)
            .order_by(total.desc(), Profile.profession.asc())
            .limit(limit)
        )
        return [
            PaidSum(key=row.profession, total=_money(row.total), label=row.profession)
            for row in db.execute(stmt)
        ]

    stmt = (
        select(Profile.id, Profile.first_name, Profile.last_name, total)
        .select_from(Profile)
        .join(Contract, Contract.client_id == Profile.id)
        .join(Job, Job.contract_id == Contract.id)
        .where(*paid_in_window)
        .group_by(Profile.id, Profile.first_name, Profile.last_name)
        .order_by(total.desc(), Profile.id.asc())
        .limit(limit)
    )
    return [
        PaidSum(key=row.id, total=_money(row.total), label=f"{row.first_name} {row.last_name}")
        for row in db.execute(stmt)
    ]


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))
