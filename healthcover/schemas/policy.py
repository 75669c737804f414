"""
Pydantic Schemas for Reimbursement Policies and Approval Computation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PolicyCreate(BaseModel):
    """Schema for creating a reimbursement policy."""

    category: str = Field(..., min_length=1, max_length=100, description="Care category key")
    rate: Decimal = Field(..., ge=0, le=100, description="Reimbursed percentage")
    ceiling_amount: Decimal = Field(..., ge=0, description="Maximum approved amount")
    active: bool = True
    description: Optional[str] = None


class PolicyUpdate(BaseModel):
    """Schema for updating a reimbursement policy."""

    rate: Optional[Decimal] = Field(None, ge=0, le=100)
    ceiling_amount: Optional[Decimal] = Field(None, ge=0)
    active: Optional[bool] = None
    description: Optional[str] = None


class PolicyResponse(BaseModel):
    """Schema for policy response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category: str
    rate: Decimal
    ceiling_amount: Decimal
    active: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ApprovalRequest(BaseModel):
    """Claimed amount to run through the policy of a category."""

    category: str = Field(..., min_length=1, max_length=100)
    claimed_amount: Decimal = Field(..., gt=0)


class ApprovalResponse(BaseModel):
    """Computed approval."""

    model_config = ConfigDict(from_attributes=True)

    category: str
    claimed_amount: Decimal
    approved_amount: Decimal
    rate: Decimal
    ceiling: Decimal
    ceiling_applied: bool
    policy_id: Optional[UUID] = None
