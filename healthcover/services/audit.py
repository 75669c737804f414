"""
Audit Attribution.

Writes AuditLog rows inside the caller's transaction, attributed to the
staff member who triggered the write. Rows are committed (or rolled back)
together with the change they describe.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from healthcover.core.enums import AuditAction, AuditResourceType
from healthcover.models.audit import AuditLog

logger = logging.getLogger(__name__)

SYSTEM_USER_NAME = "Système"


@dataclass(frozen=True)
class UserContext:
    """Identity of the caller, used only for attribution."""

    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    @property
    def actor_type(self) -> str:
        return "system" if self.is_system else "user"

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_id or SYSTEM_USER_NAME

    @classmethod
    def system(cls) -> "UserContext":
        return cls()


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def record_audit(
    session: AsyncSession,
    actor: Optional[UserContext],
    action: AuditAction,
    entity_type: AuditResourceType,
    entity_id: Any,
    details: str,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Stage an audit row on the session.

    Args:
        session: Session carrying the audited change
        actor: Caller identity; None records a system action
        action: What was done
        entity_type: Kind of record touched
        entity_id: Primary key of the record
        details: Human-readable summary
        old_values: Values before the change
        new_values: Values after the change

    Returns:
        The pending AuditLog (flushed with the caller's commit)
    """
    actor = actor or UserContext.system()
    entry = AuditLog(
        user_id=actor.user_id,
        user_name=actor.display_name,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=details,
        old_values=_jsonable(old_values) if old_values else None,
        new_values=_jsonable(new_values) if new_values else None,
    )
    session.add(entry)
    logger.debug(f"Audit {action.value} {entity_type.value}:{entity_id} by {actor.display_name}")
    return entry
