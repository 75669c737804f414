"""
Reimbursement Claim Model.

Claims are created in status SOUMIS and only change through the claims
service transition operation. They are never physically deleted by the
service layer.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthcover.core.enums import ClaimStatus
from healthcover.models.base import Base, TimeStampedModel, UUIDModel, enum_type, utcnow

if TYPE_CHECKING:
    from healthcover.models.insured import Beneficiary, Insured
    from healthcover.models.provider import HealthcareProvider


class Claim(Base, UUIDModel, TimeStampedModel):
    """
    Reimbursement request submitted by or for an insured member.

    Amount invariants kept by the claims service:
    - approved_amount is set only while status is VALIDE or PAYE
    - paid_amount is set only when status is PAYE
    - paid_amount never exceeds approved_amount
    """

    __tablename__ = "reimbursements"

    claim_number: Mapped[str] = mapped_column(
        "reimbursement_number",
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable claim number (e.g., RMB-2026-4F1A9C02DE)",
    )

    # Foreign Keys
    insured_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("insured.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Insured member the claim belongs to",
    )
    beneficiary_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("beneficiaries.id", ondelete="SET NULL"),
        nullable=True,
        comment="Dependent who received care, if not the member",
    )
    provider_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("healthcare_providers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Provider who delivered the care",
    )

    # Care
    care_category: Mapped[str] = mapped_column(
        "care_type",
        String(100),
        nullable=False,
        index=True,
        comment="Care category, matched against reimbursement policies",
    )
    medical_date: Mapped[date] = mapped_column(Date, nullable=False)
    doctor_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[ClaimStatus] = mapped_column(
        enum_type(ClaimStatus),
        default=ClaimStatus.SOUMIS,
        nullable=False,
        index=True,
    )

    # Amounts
    claimed_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Amount claimed by the insured",
    )
    approved_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Amount approved on validation",
    )
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Amount paid out",
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Lifecycle stamps
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    validated_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Relationships
    insured: Mapped["Insured"] = relationship("Insured", back_populates="claims")
    beneficiary: Mapped[Optional["Beneficiary"]] = relationship("Beneficiary")
    provider: Mapped[Optional["HealthcareProvider"]] = relationship("HealthcareProvider")
    status_history: Mapped[list["ClaimStatusHistory"]] = relationship(
        "ClaimStatusHistory",
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimStatusHistory.changed_at",
    )

    __table_args__ = (
        Index("ix_reimbursements_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Claim(number={self.claim_number}, status={self.status})>"


class ClaimStatusHistory(Base, UUIDModel):
    """
    Status change history for a claim.

    One row for the creation and one per transition.
    """

    __tablename__ = "claim_status_history"

    claim_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("reimbursements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Associated claim ID",
    )

    previous_status: Mapped[Optional[ClaimStatus]] = mapped_column(
        enum_type(ClaimStatus),
        nullable=True,
        comment="Previous status",
    )
    new_status: Mapped[ClaimStatus] = mapped_column(
        enum_type(ClaimStatus),
        nullable=False,
        comment="New status",
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
        comment="When status changed",
    )

    changed_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User who changed status",
    )
    actor_type: Mapped[str] = mapped_column(
        String(20),
        default="system",
        nullable=False,
        comment="Actor type: system, user",
    )

    reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Reason for status change",
    )
    details: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Amounts recorded with the change",
    )

    claim: Mapped["Claim"] = relationship(back_populates="status_history")

    __table_args__ = (
        Index("ix_claim_status_history_claim_changed", "claim_id", "changed_at"),
    )

    def __repr__(self) -> str:
        return f"<ClaimStatusHistory(claim_id={self.claim_id}, {self.previous_status} -> {self.new_status})>"
