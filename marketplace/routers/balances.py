"""
Balance Endpoints for the Contractor Marketplace
POST /balances/deposit/{user_id}?deposit=N  - deposit into the caller's balance
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.schemas import DepositResponse, ErrorResponse
from marketplace.auth import current_profile
from marketplace.domain.models import ProfileContext
from marketplace.services import deposits

router = APIRouter(prefix="/balances", tags=["balances"])


@router.post(
    "/deposit/{user_id}",
    response_model=DepositResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse, "description": "Cap exceeded, no debt, or not the caller's account"},
        500: {"model": ErrorResponse},
    },
)
async def deposit_balance(
    user_id: int,
    deposit: Optional[str] = Query(None, description="Amount to deposit, e.g. 90.50"),
    profile: ProfileContext = Depends(current_profile),
):
    """Deposit money into the caller's balance, capped at a quarter of unpaid job totals."""
    deposits.check_account_owner(profile, user_id)
    amount = deposits.parse_amount(deposit)
    result = await asyncio.to_thread(deposits.deposit, profile.id, amount)
    return DepositResponse.model_validate(result)
