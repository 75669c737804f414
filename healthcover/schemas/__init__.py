"""
Pydantic Schemas for the Health Cover API.

This module exports all request/response schemas for the API.
"""

from healthcover.schemas.claim import (
    ClaimCreate,
    ClaimResponse,
    ClaimStatusHistoryResponse,
    ClaimTransitionRequest,
)
from healthcover.schemas.policy import (
    ApprovalRequest,
    ApprovalResponse,
    PolicyCreate,
    PolicyResponse,
    PolicyUpdate,
)
from healthcover.schemas.provider import (
    NotificationResponse,
    ProviderCreate,
    ProviderResponse,
    ProviderUpdate,
)
from healthcover.schemas.subscription import (
    BeneficiaryCreate,
    BeneficiaryResponse,
    ContractCreate,
    ContractDetailResponse,
    ContractResponse,
    ContributionCreate,
    ContributionResponse,
    InsuredCreate,
    InsuredResponse,
    PaymentStatusUpdate,
)
from healthcover.schemas.views import VIEW_ITEM_SCHEMAS, ListResponse, serialize_items

__all__ = [
    "ApprovalRequest",
    "ApprovalResponse",
    "BeneficiaryCreate",
    "BeneficiaryResponse",
    "ClaimCreate",
    "ClaimResponse",
    "ClaimStatusHistoryResponse",
    "ClaimTransitionRequest",
    "ContractCreate",
    "ContractDetailResponse",
    "ContractResponse",
    "ContributionCreate",
    "ContributionResponse",
    "InsuredCreate",
    "InsuredResponse",
    "ListResponse",
    "NotificationResponse",
    "PaymentStatusUpdate",
    "PolicyCreate",
    "PolicyResponse",
    "PolicyUpdate",
    "ProviderCreate",
    "ProviderResponse",
    "ProviderUpdate",
    "VIEW_ITEM_SCHEMAS",
    "serialize_items",
]
