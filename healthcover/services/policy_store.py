"""
Reimbursement Policy Store.

Provides:
- Active policy lookup per care category
- Store-backed approval computation
- Policy administration (create, update, delete)

At most one active policy may exist per care category. The rule is
enforced on every write; lookups still take the oldest active match so
rows written before the rule existed resolve deterministically.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthcover.core.enums import AuditAction, AuditResourceType
from healthcover.db.connection import store_operation
from healthcover.models.policy import ReimbursementPolicy
from healthcover.services.approval_calculator import (
    Amount,
    ApprovalResult,
    compute_approval,
    find_active_policy,
)
from healthcover.services.audit import UserContext, record_audit
from healthcover.utils.errors import DuplicatePolicyError, InvalidInput, PolicyNotFoundError

logger = logging.getLogger(__name__)

MAX_RATE = Decimal("100")


def _policy_values(policy: ReimbursementPolicy) -> dict:
    return {
        "care_type": policy.category,
        "reimbursement_rate": policy.rate,
        "ceiling_amount": policy.ceiling_amount,
        "is_active": policy.active,
        "description": policy.description,
    }


def validate_policy_values(
    category: Optional[str] = None,
    rate: Optional[Amount] = None,
    ceiling_amount: Optional[Amount] = None,
) -> list[str]:
    """Return the list of problems with the given policy values."""
    errors = []
    if category is not None and not category.strip():
        errors.append("category must not be empty")
    if rate is not None and not (Decimal("0") <= Decimal(str(rate)) <= MAX_RATE):
        errors.append("rate must be between 0 and 100")
    if ceiling_amount is not None and Decimal(str(ceiling_amount)) < 0:
        errors.append("ceiling_amount must be >= 0")
    return errors


class PolicyStore:
    """
    Store-backed access to reimbursement policies.

    Handles:
    - Lookup of the active policy for a category
    - Approval computation against the stored policies
    - Write-time uniqueness of active policies
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def list_policies(self, active_only: bool = False) -> list[ReimbursementPolicy]:
        """List policies ordered by category, oldest first within a category."""
        query = select(ReimbursementPolicy).order_by(
            ReimbursementPolicy.category,
            ReimbursementPolicy.created_at,
        )
        if active_only:
            query = query.where(ReimbursementPolicy.active.is_(True))

        async with store_operation(self.session, "list policies"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def get_policy(self, policy_id: UUID) -> ReimbursementPolicy:
        async with store_operation(self.session, "get policy"):
            policy = await self.session.get(ReimbursementPolicy, policy_id)
        if policy is None:
            raise PolicyNotFoundError(f"Policy not found: {policy_id}")
        return policy

    async def _active_policies_for(self, category: str) -> list[ReimbursementPolicy]:
        result = await self.session.execute(
            select(ReimbursementPolicy)
            .where(
                ReimbursementPolicy.category == category,
                ReimbursementPolicy.active.is_(True),
            )
            .order_by(ReimbursementPolicy.created_at)
        )
        return list(result.scalars().all())

    async def get_active_policy(self, category: str) -> Optional[ReimbursementPolicy]:
        """
        Get the active policy for a care category.

        Returns:
            The oldest active policy of the category, or None when none exists
        """
        async with store_operation(self.session, "get active policy"):
            policies = await self._active_policies_for(category)
        if len(policies) > 1:
            logger.warning(
                f"{len(policies)} active policies for category '{category}', using the oldest"
            )
        return find_active_policy(policies, category)

    async def compute_approval(self, category: str, claimed_amount: Amount) -> ApprovalResult:
        """Compute the approved amount of a claim against the stored policies."""
        policy = await self.get_active_policy(category)
        return compute_approval(category, claimed_amount, [policy] if policy else [])

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def _ensure_single_active(
        self,
        category: str,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        existing = [
            p for p in await self._active_policies_for(category) if p.id != exclude_id
        ]
        if existing:
            raise DuplicatePolicyError(
                f"An active policy already exists for category '{category}'"
            )

    async def create_policy(
        self,
        category: str,
        rate: Amount,
        ceiling_amount: Amount,
        active: bool = True,
        description: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> ReimbursementPolicy:
        """
        Create a policy.

        Raises:
            InvalidInput: Rate outside [0, 100], negative ceiling or empty category
            DuplicatePolicyError: Another active policy covers the category
        """
        errors = validate_policy_values(category, rate, ceiling_amount)
        if errors:
            raise InvalidInput("Invalid policy", errors=errors)

        category = category.strip()
        async with store_operation(self.session, "create policy"):
            if active:
                await self._ensure_single_active(category)

            policy = ReimbursementPolicy(
                category=category,
                rate=Decimal(str(rate)),
                ceiling_amount=Decimal(str(ceiling_amount)),
                active=active,
                description=description,
            )
            self.session.add(policy)
            await self.session.flush()

            record_audit(
                self.session,
                actor,
                AuditAction.CREATE,
                AuditResourceType.SETTINGS,
                policy.id,
                f"Barème créé pour {category}",
                new_values=_policy_values(policy),
            )
            await self.session.commit()

        logger.info(f"Created policy for '{category}' (rate={policy.rate}, ceiling={policy.ceiling_amount})")
        return policy

    async def update_policy(
        self,
        policy_id: UUID,
        rate: Optional[Amount] = None,
        ceiling_amount: Optional[Amount] = None,
        active: Optional[bool] = None,
        description: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> ReimbursementPolicy:
        """Update rate, ceiling, activity or description of a policy."""
        errors = validate_policy_values(rate=rate, ceiling_amount=ceiling_amount)
        if errors:
            raise InvalidInput("Invalid policy", errors=errors)

        policy = await self.get_policy(policy_id)
        old_values = _policy_values(policy)

        async with store_operation(self.session, "update policy"):
            if active and not policy.active:
                await self._ensure_single_active(policy.category, exclude_id=policy.id)

            if rate is not None:
                policy.rate = Decimal(str(rate))
            if ceiling_amount is not None:
                policy.ceiling_amount = Decimal(str(ceiling_amount))
            if active is not None:
                policy.active = active
            if description is not None:
                policy.description = description

            record_audit(
                self.session,
                actor,
                AuditAction.UPDATE,
                AuditResourceType.SETTINGS,
                policy.id,
                f"Barème modifié pour {policy.category}",
                old_values=old_values,
                new_values=_policy_values(policy),
            )
            await self.session.commit()

        logger.info(f"Updated policy {policy_id} for '{policy.category}'")
        return policy

    async def delete_policy(
        self,
        policy_id: UUID,
        actor: Optional[UserContext] = None,
    ) -> None:
        policy = await self.get_policy(policy_id)
        old_values = _policy_values(policy)

        async with store_operation(self.session, "delete policy"):
            await self.session.delete(policy)
            record_audit(
                self.session,
                actor,
                AuditAction.DELETE,
                AuditResourceType.SETTINGS,
                policy_id,
                f"Barème supprimé pour {policy.category}",
                old_values=old_values,
            )
            await self.session.commit()

        logger.info(f"Deleted policy {policy_id}")
