"""
Pydantic Schemas for Reimbursement Claims.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from healthcover.core.enums import ClaimStatus


class ClaimCreate(BaseModel):
    """Schema for submitting a claim."""

    insured_id: UUID
    claimed_amount: Decimal = Field(..., description="Amount claimed, must be > 0")
    care_category: str = Field(..., min_length=1, max_length=100)
    medical_date: date
    provider_id: Optional[UUID] = None
    beneficiary_id: Optional[UUID] = None
    doctor_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ClaimTransitionRequest(BaseModel):
    """
    Status change requested by a reviewer.

    expected_status is the status the reviewer saw; the change is refused
    if the claim moved since.
    """

    status: str = Field(..., description="verification, valide, paye or rejete")
    approved_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    expected_status: Optional[ClaimStatus] = None
    notes: Optional[str] = Field(None, max_length=500)
    payment_reference: Optional[str] = Field(None, max_length=100)


class InsuredSummary(BaseModel):
    """Insured member shown beside a claim."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    matricule: str
    first_name: str
    last_name: str


class ClaimResponse(BaseModel):
    """Schema for claim response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    claim_number: str
    insured_id: UUID
    beneficiary_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    care_category: str
    medical_date: date
    doctor_name: Optional[str] = None
    notes: Optional[str] = None
    status: ClaimStatus
    claimed_amount: Decimal
    approved_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    payment_reference: Optional[str] = None
    created_at: datetime
    validated_at: Optional[datetime] = None
    validated_by: Optional[str] = None
    paid_at: Optional[datetime] = None
    paid_by: Optional[str] = None
    insured: Optional[InsuredSummary] = None


class ClaimStatusHistoryResponse(BaseModel):
    """One status change of a claim."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    previous_status: Optional[ClaimStatus] = None
    new_status: ClaimStatus
    changed_at: datetime
    changed_by: Optional[str] = None
    actor_type: str
    reason: Optional[str] = None
    details: Optional[dict[str, Any]] = None
