"""
SQLAlchemy Models for the Health Cover Management System.

This module exports all database models for the application.
"""

from healthcover.models.base import Base, TimeStampedModel, UUIDModel
from healthcover.models.contract import Contract, Contribution
from healthcover.models.insured import Beneficiary, Insured
from healthcover.models.provider import HealthcareProvider
from healthcover.models.policy import ReimbursementPolicy
from healthcover.models.claim import Claim, ClaimStatusHistory
from healthcover.models.audit import AuditLog

__all__ = [
    "Base",
    "TimeStampedModel",
    "UUIDModel",
    "Contract",
    "Contribution",
    "Insured",
    "Beneficiary",
    "HealthcareProvider",
    "ReimbursementPolicy",
    "Claim",
    "ClaimStatusHistory",
    "AuditLog",
]
