"""
Reimbursement Approval Calculator.

Computes the approved amount of a claim from its care category and claimed
amount:
- no active policy for the category: the full claimed amount (rate 100)
- otherwise claimed * rate / 100, capped at the policy ceiling
- uncapped amounts are rounded half-up to a whole currency unit

Pure functions only. The caller rejects non-positive amounts beforehand;
the store-backed lookup lives in PolicyStore.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from healthcover.models.policy import ReimbursementPolicy

FULL_RATE = Decimal("100")
NO_CEILING = Decimal("0")
WHOLE_UNIT = Decimal("1")

Amount = Union[Decimal, int, str]


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of an approval computation."""

    category: str
    claimed_amount: Decimal
    approved_amount: Decimal
    rate: Decimal
    ceiling: Decimal
    ceiling_applied: bool
    policy_id: Optional[UUID] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "claimed_amount": self.claimed_amount,
            "approved_amount": self.approved_amount,
            "rate": self.rate,
            "ceiling": self.ceiling,
            "ceiling_applied": self.ceiling_applied,
            "policy_id": self.policy_id,
        }


def _as_decimal(value: Amount) -> Decimal:
    # str() keeps floats from leaking binary noise into money
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_to_unit(amount: Decimal) -> Decimal:
    """Round half-up to a whole currency unit."""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def find_active_policy(
    policies: Iterable[ReimbursementPolicy],
    category: str,
) -> Optional[ReimbursementPolicy]:
    """
    First active policy for a care category, in iteration order.

    Absence is not an error: it means no ceiling applies.
    """
    for policy in policies:
        if policy.category == category and policy.active:
            return policy
    return None


def compute_approval(
    category: str,
    claimed_amount: Amount,
    policies: Iterable[ReimbursementPolicy],
) -> ApprovalResult:
    """
    Compute the approved amount of a claim.

    Args:
        category: Care category of the claim
        claimed_amount: Amount claimed (> 0, checked by the caller)
        policies: Policies to search, oldest first

    Returns:
        ApprovalResult with the approved amount, the rate and ceiling used,
        and whether the ceiling capped the result
    """
    claimed = _as_decimal(claimed_amount)
    policy = find_active_policy(policies, category)

    if policy is None:
        return ApprovalResult(
            category=category,
            claimed_amount=claimed,
            approved_amount=claimed,
            rate=FULL_RATE,
            ceiling=NO_CEILING,
            ceiling_applied=False,
        )

    rate = _as_decimal(policy.rate)
    ceiling = _as_decimal(policy.ceiling_amount)
    raw = claimed * rate / FULL_RATE
    ceiling_applied = raw > ceiling

    return ApprovalResult(
        category=category,
        claimed_amount=claimed,
        approved_amount=ceiling if ceiling_applied else round_to_unit(raw),
        rate=rate,
        ceiling=ceiling,
        ceiling_applied=ceiling_applied,
        policy_id=policy.id,
    )
