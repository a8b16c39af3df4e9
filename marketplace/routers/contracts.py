"""
Contract Endpoints for the Contractor Marketplace
GET /contracts       - non-terminated contracts of the caller
GET /contracts/{id}  - one contract, only if the caller is a party
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from marketplace.api.schemas import ContractResponse, ErrorResponse
from marketplace.auth import current_profile
from marketplace.database import get_db
from marketplace.domain.models import ProfileContext, is_party
from marketplace.exceptions import NotFoundError, TransientError
from marketplace.queries import find_active_contracts, get_contract

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("", response_model=List[ContractResponse], responses={404: {"model": ErrorResponse}})
async def list_contracts(profile: ProfileContext = Depends(current_profile)):
    """Return the caller's contracts that are not terminated."""
    def _sync():
        db = get_db()
        try:
            rows = find_active_contracts(db, profile.id)
            return [ContractResponse.model_validate(c) for c in rows]
        except SQLAlchemyError as exc:
            logger.error("Listing contracts for profile %s failed: %s", profile.id, exc)
            raise NotFoundError("Contracts unavailable") from exc
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/{contract_id}", response_model=ContractResponse, responses={404: {"model": ErrorResponse}})
async def read_contract(contract_id: int, profile: ProfileContext = Depends(current_profile)):
    """Return a contract if the caller is its client or contractor."""
    def _sync():
        db = get_db()
        try:
            contract = get_contract(db, contract_id)
            # Someone else's contract looks the same as a missing one
            if contract is None or not is_party(profile, contract):
                raise NotFoundError(f"Contract {contract_id} not found")
            return ContractResponse.model_validate(contract)
        except SQLAlchemyError as exc:
            logger.error("Loading contract %s failed: %s", contract_id, exc)
            raise TransientError("contract lookup failed", cause=exc) from exc
        finally:
            db.close()

    return await asyncio.to_thread(_sync)
