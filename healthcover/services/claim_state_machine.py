"""
Claim Status State Machine.

Provides:
- Valid status transitions and their preconditions
- Transition validation
- Status helpers

State Diagram:
    SOUMIS -> VERIFICATION | VALIDE | PAYE | REJETE
    VERIFICATION -> VERIFICATION | VALIDE | PAYE | REJETE
    VALIDE -> VERIFICATION | VALIDE | PAYE | REJETE
    PAYE, REJETE are terminal

Ordering between non-terminal statuses is not enforced: a validated claim
may go back to verification (its approval is then cleared by the claims
service). Only leaving a terminal status is refused.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from healthcover.core.enums import ClaimStatus
from healthcover.utils.errors import (
    HealthCoverError,
    InvalidAmount,
    InvalidInput,
    InvalidTransition,
    MissingApproval,
)

logger = logging.getLogger(__name__)

TARGET_STATUSES = frozenset(
    {ClaimStatus.VERIFICATION, ClaimStatus.VALIDE, ClaimStatus.PAYE, ClaimStatus.REJETE}
)
TERMINAL_STATUSES = frozenset({ClaimStatus.PAYE, ClaimStatus.REJETE})
APPROVED_STATUSES = frozenset({ClaimStatus.VALIDE, ClaimStatus.PAYE})


@dataclass
class Transition:
    """Represents a valid state transition."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    requires_approval: bool = False  # An approved amount must be known
    requires_payment: bool = False  # A paid amount must be supplied
    clears_approval: bool = False  # Approved amount and validated_at are reset


@dataclass
class TransitionContext:
    """Context for a transition attempt."""

    claim_id: str
    current_status: ClaimStatus
    target_status: Union[ClaimStatus, str]
    current_approved_amount: Optional[Decimal] = None
    approved_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    triggered_by: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def effective_approved_amount(self) -> Optional[Decimal]:
        """Approved amount the claim will carry after the transition."""
        if self.approved_amount is not None:
            return self.approved_amount
        return self.current_approved_amount


@dataclass
class TransitionResult:
    """Result of a transition attempt."""

    success: bool
    from_status: ClaimStatus
    to_status: Optional[ClaimStatus] = None
    error: Optional[str] = None
    error_type: type[HealthCoverError] = InvalidTransition
    transition: Optional[Transition] = None

    def raise_for_error(self) -> None:
        if not self.success:
            raise self.error_type(self.error)


def _from(status: ClaimStatus) -> list[Transition]:
    return [
        Transition(status, ClaimStatus.VERIFICATION, clears_approval=True),
        Transition(status, ClaimStatus.VALIDE, requires_approval=True),
        Transition(status, ClaimStatus.PAYE, requires_approval=True, requires_payment=True),
        Transition(status, ClaimStatus.REJETE, clears_approval=True),
    ]


# =============================================================================
# Valid Transitions Definition
# =============================================================================


VALID_TRANSITIONS: list[Transition] = [
    *_from(ClaimStatus.SOUMIS),
    *_from(ClaimStatus.VERIFICATION),
    *_from(ClaimStatus.VALIDE),
]


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """
    State machine for claim status transitions.

    Checks the target, the terminal rule and the amount preconditions; the
    claims service applies the result.
    """

    def __init__(self):
        """Initialize state machine with transition map."""
        self._transitions: dict[tuple[ClaimStatus, ClaimStatus], Transition] = {}
        self._from_status_map: dict[ClaimStatus, list[Transition]] = {}

        self._build_transition_maps()

    def _build_transition_maps(self) -> None:
        """Build lookup maps for transitions."""
        for transition in VALID_TRANSITIONS:
            self._transitions[(transition.from_status, transition.to_status)] = transition
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    def get_next_statuses(self, status: ClaimStatus) -> list[ClaimStatus]:
        """Get all possible next statuses from current status."""
        return [t.to_status for t in self._from_status_map.get(status, [])]

    def can_transition(self, from_status: ClaimStatus, to_status: ClaimStatus) -> bool:
        return (from_status, to_status) in self._transitions

    def get_transition(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> Optional[Transition]:
        return self._transitions.get((from_status, to_status))

    def validate_transition(self, context: TransitionContext) -> TransitionResult:
        """
        Validate a transition attempt.

        Args:
            context: Transition context with the amounts supplied by the caller

        Returns:
            TransitionResult; on failure error_type names the domain error
        """

        def fail(message: str, error_type: type[HealthCoverError] = InvalidTransition) -> TransitionResult:
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error=message,
                error_type=error_type,
            )

        try:
            target = ClaimStatus(context.target_status)
        except ValueError:
            return fail(f"Unknown status target: {context.target_status}")

        if target not in TARGET_STATUSES:
            return fail(f"Invalid status target: {target.value}")

        if is_terminal_status(context.current_status):
            return fail(
                f"Claim {context.claim_id} is {context.current_status.value}, "
                f"no further transitions allowed"
            )

        transition = self.get_transition(context.current_status, target)
        if transition is None:
            return fail(f"Invalid transition: {context.current_status.value} -> {target.value}")

        if target == ClaimStatus.REJETE:
            # Amounts sent along with a rejection are ignored
            return TransitionResult(
                success=True,
                from_status=context.current_status,
                to_status=target,
                transition=transition,
            )

        if context.approved_amount is not None and not transition.requires_approval:
            return fail(
                f"approved_amount cannot be set when moving to {target.value}",
                InvalidInput,
            )
        if context.paid_amount is not None and not transition.requires_payment:
            return fail(
                f"paid_amount cannot be set when moving to {target.value}",
                InvalidInput,
            )
        if context.approved_amount is not None and context.approved_amount < 0:
            return fail("approved_amount must be >= 0", InvalidAmount)

        if target == ClaimStatus.VALIDE and context.approved_amount is None:
            return fail("An approved amount is required to validate a claim", MissingApproval)

        if transition.requires_payment:
            approved = context.effective_approved_amount
            if approved is None:
                return fail("Claim has no approved amount to pay", MissingApproval)
            if context.paid_amount is None:
                return fail("A paid amount is required to pay a claim", InvalidAmount)
            if context.paid_amount < 0:
                return fail("paid_amount must be >= 0", InvalidAmount)
            if context.paid_amount > approved:
                return fail(
                    f"Paid amount {context.paid_amount} exceeds approved amount {approved}",
                    InvalidAmount,
                )

        return TransitionResult(
            success=True,
            from_status=context.current_status,
            to_status=target,
            transition=transition,
        )

    def execute_transition(self, context: TransitionContext) -> TransitionResult:
        """
        Validate a transition and log the outcome.

        Raises:
            InvalidTransition, InvalidInput, MissingApproval, InvalidAmount
        """
        result = self.validate_transition(context)
        if not result.success:
            logger.warning(f"Transition refused for claim {context.claim_id}: {result.error}")
            result.raise_for_error()
        return result


# =============================================================================
# Status Helpers
# =============================================================================


def is_terminal_status(status: ClaimStatus) -> bool:
    """Check if status is terminal (no further transitions)."""
    return status in TERMINAL_STATUSES


def is_pending_status(status: ClaimStatus) -> bool:
    """Check if claim still awaits a decision."""
    return status in (ClaimStatus.SOUMIS, ClaimStatus.VERIFICATION)


def get_status_display_name(status: ClaimStatus) -> str:
    """Get the label shown to staff."""
    display_names = {
        ClaimStatus.SOUMIS: "Soumis",
        ClaimStatus.VERIFICATION: "En vérification",
        ClaimStatus.VALIDE: "Validé",
        ClaimStatus.PAYE: "Payé",
        ClaimStatus.REJETE: "Rejeté",
    }
    return display_names.get(status, status.value)


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
