"""
Audit Log Model.

Who did what to which record, with the old and new values of the change.
Rows are written by the services; displaying them is left to the back office.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from healthcover.core.enums import AuditAction, AuditResourceType
from healthcover.models.base import Base, enum_type, utcnow


class AuditLog(Base):
    """Audit log entry attributed to the acting staff member."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing ID",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
        comment="When the action occurred",
    )

    # Actor Information
    user_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="User ID (null for system actions)",
    )
    user_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name at time of action",
    )

    # Action Information
    action: Mapped[AuditAction] = mapped_column(
        enum_type(AuditAction),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[AuditResourceType] = mapped_column(
        enum_type(AuditResourceType),
        nullable=False,
        index=True,
    )
    entity_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Change Details
    old_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog({self.action} {self.entity_type}:{self.entity_id} by {self.user_name})>"
