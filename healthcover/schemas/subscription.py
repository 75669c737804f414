"""
Pydantic Schemas for Contracts, Insured Members, Beneficiaries and Contributions.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from healthcover.core.enums import (
    ContractType,
    Gender,
    MaritalStatus,
    PaymentStatus,
    RelationshipType,
    SubscriptionStatus,
)


# =============================================================================
# Requests
# =============================================================================


class BeneficiaryCreate(BaseModel):
    """Dependent declared on subscription."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    relationship: RelationshipType
    gender: Gender = Gender.M
    birth_place: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class InsuredCreate(BaseModel):
    """Insured member declared on subscription."""

    matricule: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    insurance_start_date: date
    gender: Gender = Gender.M
    marital_status: MaritalStatus = MaritalStatus.CELIBATAIRE
    maiden_name: Optional[str] = Field(None, max_length=100)
    birth_place: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    employer: Optional[str] = Field(None, max_length=255)
    job_title: Optional[str] = Field(None, max_length=100)
    work_location: Optional[str] = Field(None, max_length=100)
    beneficiaries: list[BeneficiaryCreate] = Field(default_factory=list)


class ContractCreate(BaseModel):
    """Schema for subscribing a contract."""

    client_code: str = Field(..., min_length=1, max_length=50)
    company_name: str = Field(..., min_length=1, max_length=255)
    start_date: date
    contract_type: ContractType = ContractType.ENTREPRISE
    contract_number: Optional[str] = Field(None, max_length=50)
    end_date: Optional[date] = None
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    insured: list[InsuredCreate] = Field(default_factory=list)


class ContributionCreate(BaseModel):
    """Schema for adding a contribution to a contract."""

    amount: Decimal = Field(..., gt=0)
    period_start: date
    period_end: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_period(self) -> "ContributionCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not precede period_start")
        return self


class PaymentStatusUpdate(BaseModel):
    """Payment recorded on a contribution."""

    status: PaymentStatus
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    payment_reference: Optional[str] = Field(None, max_length=100)


# =============================================================================
# Responses
# =============================================================================


class BeneficiaryResponse(BaseModel):
    """Schema for beneficiary response."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    insured_id: UUID
    first_name: str
    last_name: str
    birth_date: date
    gender: Gender
    relationship: RelationshipType = Field(validation_alias="relationship_type")
    phone: Optional[str] = None


class InsuredResponse(BaseModel):
    """Schema for insured member response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_id: UUID
    matricule: str
    first_name: str
    last_name: str
    birth_date: date
    gender: Gender
    marital_status: MaritalStatus
    status: SubscriptionStatus
    email: Optional[str] = None
    phone: Optional[str] = None
    employer: Optional[str] = None
    insurance_start_date: date
    eligible: Optional[bool] = None
    created_at: datetime


class InsuredDetailResponse(InsuredResponse):
    """Insured member with dependents."""

    beneficiaries: list[BeneficiaryResponse] = Field(default_factory=list)


class ContributionResponse(BaseModel):
    """Schema for contribution response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_id: UUID
    amount: Decimal
    paid_amount: Decimal
    period_start: date
    period_end: date
    payment_status: PaymentStatus
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class ContractResponse(BaseModel):
    """Schema for contract response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_number: str
    client_code: str
    company_name: str
    contract_type: ContractType
    status: SubscriptionStatus
    start_date: date
    end_date: Optional[date] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime


class ContractDetailResponse(ContractResponse):
    """Contract with its members and contributions."""

    insured: list[InsuredDetailResponse] = Field(default_factory=list)
    contributions: list[ContributionResponse] = Field(default_factory=list)
