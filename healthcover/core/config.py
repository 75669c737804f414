"""
Reimbursement Configuration
Settings for claim numbering, currency and list views.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReimbursementSettings(BaseSettings):
    """
    Reimbursement processing configuration settings.

    Extends the base application settings with claim-specific configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="REIMBURSEMENT_",  # All reimbursement settings prefixed with REIMBURSEMENT_
    )

    # =========================================================================
    # Claim Numbering
    # =========================================================================
    CLAIM_NUMBER_PREFIX: str = Field(
        default="RMB",
        min_length=1,
        max_length=10,
        description="Prefix of generated claim numbers (e.g. RMB-2026-4F1A9C02DE)",
    )
    CLAIM_NUMBER_RANDOM_LENGTH: int = Field(
        default=10,
        ge=8,
        le=32,
        description="Number of random hex characters in a claim number",
    )

    # =========================================================================
    # Amounts
    # =========================================================================
    CURRENCY: str = Field(
        default="KMF",
        max_length=3,
        description="Currency code used for all amounts",
    )

    # =========================================================================
    # Views
    # =========================================================================
    VIEW_SEARCH_MIN_LENGTH: int = Field(
        default=0,
        ge=0,
        description="Search terms shorter than this are ignored by list views",
    )

    @field_validator("CLAIM_NUMBER_PREFIX")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Claim numbers are upper case."""
        return v.strip().upper()


@lru_cache
def get_reimbursement_settings() -> ReimbursementSettings:
    """Get cached reimbursement settings instance."""
    return ReimbursementSettings()
