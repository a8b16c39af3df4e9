"""
Job Endpoints for the Contractor Marketplace
GET  /jobs/unpaid        - unpaid jobs on the caller's in-progress contracts
POST /jobs/{job_id}/pay  - pay a job (caller must be the contract's client)
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from marketplace.api.schemas import ErrorResponse, JobResponse, PaymentResponse
from marketplace.auth import current_profile
from marketplace.database import get_db
from marketplace.domain.models import ProfileContext
from marketplace.exceptions import NotFoundError
from marketplace.queries import find_unpaid_jobs
from marketplace.services.payments import pay_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/unpaid", response_model=List[JobResponse], responses={404: {"model": ErrorResponse}})
async def list_unpaid_jobs(profile: ProfileContext = Depends(current_profile)):
    def _sync():
        db = get_db()
        try:
            return [JobResponse.model_validate(j) for j in find_unpaid_jobs(db, profile.id)]
        except SQLAlchemyError as exc:
            logger.error("Listing unpaid jobs for profile %s failed: %s", profile.id, exc)
            raise NotFoundError("Jobs unavailable") from exc
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.post(
    "/{job_id}/pay",
    response_model=PaymentResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the client, already paid or insufficient funds"},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def pay(job_id: int, profile: ProfileContext = Depends(current_profile)):
    """Pay for a job: move its price from the client to the contractor."""
    receipt = await asyncio.to_thread(pay_job, profile.id, job_id)
    return PaymentResponse.model_validate(receipt)
