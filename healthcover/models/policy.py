"""
Reimbursement Policy Model.

One row per care category: the percentage reimbursed and the absolute
ceiling of an approved amount.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from healthcover.models.base import Base, TimeStampedModel, UUIDModel


class ReimbursementPolicy(Base, UUIDModel, TimeStampedModel):
    """Rate and ceiling applied to claims of one care category."""

    __tablename__ = "reimbursement_ceilings"

    category: Mapped[str] = mapped_column(
        "care_type",
        String(100),
        nullable=False,
        comment="Care category key (consultation, pharmacie, ...)",
    )
    rate: Mapped[Decimal] = mapped_column(
        "reimbursement_rate",
        Numeric(5, 2),
        default=Decimal("100"),
        nullable=False,
        comment="Reimbursed percentage, 0-100",
    )
    ceiling_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
        comment="Maximum approved amount",
    )
    active: Mapped[bool] = mapped_column(
        "is_active",
        Boolean,
        default=True,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("reimbursement_rate >= 0 AND reimbursement_rate <= 100", name="ck_policy_rate"),
        CheckConstraint("ceiling_amount >= 0", name="ck_policy_ceiling"),
        Index("ix_reimbursement_ceilings_care_type_active", "care_type", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ReimbursementPolicy(category={self.category}, rate={self.rate}, ceiling={self.ceiling_amount})>"
