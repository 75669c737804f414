"""
Healthcare Provider Model.
"""

from typing import Optional

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from healthcover.core.enums import ProviderType
from healthcover.models.base import Base, TimeStampedModel, UUIDModel, enum_type


class HealthcareProvider(Base, UUIDModel, TimeStampedModel):
    """Hospital, clinic, laboratory, pharmacy or doctor referenced by claims."""

    __tablename__ = "healthcare_providers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    provider_type: Mapped[ProviderType] = mapped_column(
        enum_type(ProviderType),
        nullable=False,
    )
    is_conventioned: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Provider holds a convention with the insurer",
    )
    convention_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tariffs: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<HealthcareProvider(name={self.name}, type={self.provider_type})>"
