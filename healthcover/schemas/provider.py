"""
Pydantic Schemas for Healthcare Providers and Staff Notifications.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from healthcover.core.enums import ProviderType


class ProviderCreate(BaseModel):
    """Schema for registering a healthcare provider."""

    name: str = Field(..., min_length=1, max_length=255)
    provider_type: ProviderType
    is_conventioned: bool = False
    convention_number: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    tariffs: Optional[dict] = None


class ProviderUpdate(BaseModel):
    """Schema for updating a healthcare provider."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    provider_type: Optional[ProviderType] = None
    is_conventioned: Optional[bool] = None
    convention_number: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)


class ProviderResponse(BaseModel):
    """Schema for provider response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    provider_type: ProviderType
    is_conventioned: bool
    convention_number: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NotificationResponse(BaseModel):
    """One staff alert."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    level: str
    title: str
    message: str
    timestamp: datetime
    read: bool
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
