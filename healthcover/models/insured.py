"""
Insured Member and Beneficiary Models.

An insured member belongs to exactly one contract. Beneficiaries are the
member's dependents; their eligibility is always the member's.
"""

from datetime import date
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import Date, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthcover.core.enums import Gender, MaritalStatus, RelationshipType, SubscriptionStatus
from healthcover.models.base import Base, TimeStampedModel, UUIDModel, enum_type

if TYPE_CHECKING:
    from healthcover.models.claim import Claim
    from healthcover.models.contract import Contract


class Insured(Base, UUIDModel, TimeStampedModel):
    """Insured member covered by a contract."""

    __tablename__ = "insured"

    contract_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning contract",
    )
    matricule: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Member registration number",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    maiden_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    birth_place: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gender: Mapped[Gender] = mapped_column(enum_type(Gender), default=Gender.M, nullable=False)
    marital_status: Mapped[MaritalStatus] = mapped_column(
        enum_type(MaritalStatus),
        default=MaritalStatus.CELIBATAIRE,
        nullable=False,
    )

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    employer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    work_location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    insurance_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    insurance_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[SubscriptionStatus] = mapped_column(
        enum_type(SubscriptionStatus),
        default=SubscriptionStatus.EN_ATTENTE,
        nullable=False,
        index=True,
    )

    # Relationships
    contract: Mapped["Contract"] = relationship("Contract", back_populates="insured")
    beneficiaries: Mapped[list["Beneficiary"]] = relationship(
        "Beneficiary",
        back_populates="insured",
        cascade="all, delete-orphan",
    )
    claims: Mapped[list["Claim"]] = relationship("Claim", back_populates="insured")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Insured(matricule={self.matricule}, contract={self.contract_id})>"


class Beneficiary(Base, UUIDModel, TimeStampedModel):
    """Dependent of an insured member."""

    __tablename__ = "beneficiaries"

    insured_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("insured.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    birth_place: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gender: Mapped[Gender] = mapped_column(enum_type(Gender), default=Gender.M, nullable=False)
    relationship_type: Mapped[RelationshipType] = mapped_column(
        "relationship",
        enum_type(RelationshipType),
        nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    insured: Mapped["Insured"] = relationship("Insured", back_populates="beneficiaries")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Beneficiary(insured={self.insured_id}, relationship={self.relationship_type})>"
