"""
Contract and Contribution Models.

A contract is the payer entity (a company or a family). Its contributions
carry the payment status that decides whether its insured members may
submit reimbursement claims.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthcover.core.enums import ContractType, PaymentStatus, SubscriptionStatus
from healthcover.models.base import Base, TimeStampedModel, UUIDModel, enum_type

if TYPE_CHECKING:
    from healthcover.models.insured import Insured


class Contract(Base, UUIDModel, TimeStampedModel):
    """Subscription contract held by a company or a family."""

    __tablename__ = "contracts"

    contract_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable contract number",
    )
    client_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Client code of the payer",
    )
    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Raison sociale of the payer",
    )
    contract_type: Mapped[ContractType] = mapped_column(
        enum_type(ContractType),
        default=ContractType.ENTREPRISE,
        nullable=False,
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        enum_type(SubscriptionStatus),
        default=SubscriptionStatus.EN_ATTENTE,
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Relationships
    contributions: Mapped[list["Contribution"]] = relationship(
        "Contribution",
        back_populates="contract",
        cascade="all, delete-orphan",
    )
    insured: Mapped[list["Insured"]] = relationship(
        "Insured",
        back_populates="contract",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Contract(number={self.contract_number}, status={self.status})>"


class Contribution(Base, UUIDModel, TimeStampedModel):
    """Premium owed for a contract period."""

    __tablename__ = "contributions"

    contract_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_type(PaymentStatus),
        default=PaymentStatus.EN_ATTENTE,
        nullable=False,
        index=True,
    )
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contract: Mapped["Contract"] = relationship("Contract", back_populates="contributions")

    __table_args__ = (
        Index("ix_contributions_contract_status", "contract_id", "payment_status"),
    )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAYE

    def __repr__(self) -> str:
        return f"<Contribution(contract={self.contract_id}, status={self.payment_status})>"
