"""
List Responses.

Every list carries the statistics computed over the whole table and the
loading flag of the view that produced it.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from healthcover.schemas.claim import ClaimResponse
from healthcover.schemas.policy import PolicyResponse
from healthcover.schemas.provider import NotificationResponse, ProviderResponse
from healthcover.schemas.subscription import (
    BeneficiaryResponse,
    ContractResponse,
    ContributionResponse,
    InsuredResponse,
)

ItemT = TypeVar("ItemT")


class ListResponse(BaseModel, Generic[ItemT]):
    """Items of a view with its statistics."""

    items: list[ItemT]
    stats: dict[str, Any] = Field(default_factory=dict)
    is_loading: bool = False


# Item schema used to serialize each view kind
VIEW_ITEM_SCHEMAS: dict[str, type[BaseModel]] = {
    "insured": InsuredResponse,
    "claims": ClaimResponse,
    "beneficiaries": BeneficiaryResponse,
    "contracts": ContractResponse,
    "contributions": ContributionResponse,
    "policies": PolicyResponse,
    "dashboard": ClaimResponse,
    "providers": ProviderResponse,
    "notifications": NotificationResponse,
}


def serialize_items(kind: str, items: list[Any], extra: dict[str, Any]) -> list[BaseModel]:
    """Convert the ORM objects of a view into their response schema."""
    schema = VIEW_ITEM_SCHEMAS[kind]
    models = [schema.model_validate(item) for item in items]
    if kind == "insured":
        eligible_ids = extra.get("eligible_ids", set())
        models = [m.model_copy(update={"eligible": m.id in eligible_ids}) for m in models]
    return models
