"""
Services Layer for Health Cover Management.

Exports the policy, eligibility, claim lifecycle, subscription and live
view services.
"""

from healthcover.services.approval_calculator import (
    ApprovalResult,
    compute_approval,
    find_active_policy,
)
from healthcover.services.audit import UserContext, record_audit
from healthcover.services.claim_state_machine import (
    ClaimStateMachine,
    TransitionContext,
    TransitionResult,
    get_claim_state_machine,
)
from healthcover.services.claims_service import (
    ClaimCreateDTO,
    ClaimsService,
    get_claims_service,
)
from healthcover.services.eligibility import (
    EligibilityService,
    filter_eligible_beneficiaries,
    filter_eligible_claimants,
    filter_eligible_insured,
    paid_contract_ids,
)
from healthcover.services.live_views import (
    VIEW_TYPES,
    LiveView,
    ViewScope,
    get_view_type,
)
from healthcover.services.policy_store import PolicyStore
from healthcover.services.subscription_service import (
    BeneficiaryCreateDTO,
    ContractCreateDTO,
    InsuredCreateDTO,
    SubscriptionService,
)

__all__ = [
    # Approval
    "ApprovalResult",
    "compute_approval",
    "find_active_policy",
    "PolicyStore",
    # Audit
    "UserContext",
    "record_audit",
    # Claims
    "ClaimStateMachine",
    "TransitionContext",
    "TransitionResult",
    "get_claim_state_machine",
    "ClaimCreateDTO",
    "ClaimsService",
    "get_claims_service",
    # Eligibility
    "EligibilityService",
    "filter_eligible_beneficiaries",
    "filter_eligible_claimants",
    "filter_eligible_insured",
    "paid_contract_ids",
    # Subscriptions
    "BeneficiaryCreateDTO",
    "ContractCreateDTO",
    "InsuredCreateDTO",
    "SubscriptionService",
    # Live views
    "VIEW_TYPES",
    "LiveView",
    "ViewScope",
    "get_view_type",
]
