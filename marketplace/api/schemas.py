"""
Contractor Marketplace -- API request/response schemas (Pydantic).

All endpoints that return structured data use these models, which gives
OpenAPI documentation and a stable contract for clients.  Money is
serialised as a decimal string.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    terms: str
    status: str
    client_id: int
    contractor_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    price: Decimal
    paid: bool = False
    payment_date: Optional[datetime] = None
    contract_id: int


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: int
    client_id: int
    contractor_id: int
    amount: Decimal
    client_balance: Decimal
    contractor_balance: Decimal
    payment_date: datetime


class DepositResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: int
    amount: Decimal
    balance: Decimal
    outstanding_debt: Decimal
    cap: Decimal = Field(..., description="Maximum deposit allowed before this one")


class BestProfessionResponse(BaseModel):
    profession: str
    total_earned: Decimal


class BestClientResponse(BaseModel):
    id: int
    full_name: str
    paid: Decimal


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    database: str
    metrics: Dict[str, int] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    detail: str
    code: str

