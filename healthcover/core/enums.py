"""
Core Enumerations for the Health Cover Management System.

Status values keep the French codes stored by the back office
(soumis, valide, paye, ...) so existing records and exports stay readable.
"""

from enum import Enum


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Reimbursement claim lifecycle status.

    State Machine Transitions:
    SOUMIS -> VERIFICATION | VALIDE | PAYE | REJETE
    VERIFICATION -> VERIFICATION | VALIDE | PAYE | REJETE
    VALIDE -> VERIFICATION | VALIDE | PAYE | REJETE
    PAYE, REJETE are terminal
    """

    SOUMIS = "soumis"
    VERIFICATION = "verification"
    VALIDE = "valide"
    PAYE = "paye"
    REJETE = "rejete"


# =============================================================================
# Subscription Enums
# =============================================================================


class SubscriptionStatus(str, Enum):
    """Status of a contract or an insured member's subscription."""

    EN_ATTENTE = "en_attente"
    VALIDEE = "validee"
    REJETEE = "rejetee"
    RESERVE_MEDICALE = "reserve_medicale"


class ContractType(str, Enum):
    """Contract holder type."""

    ENTREPRISE = "entreprise"
    FAMILLE = "famille"


class PaymentStatus(str, Enum):
    """Contribution payment status. Only PAYE makes a contract paid."""

    EN_ATTENTE = "en_attente"
    PAYE = "paye"
    PARTIEL = "partiel"
    ANNULE = "annule"


class Gender(str, Enum):
    """Gender as recorded on subscription forms."""

    M = "M"
    F = "F"


class MaritalStatus(str, Enum):
    """Marital status of an insured member."""

    MARIE = "marie"
    CELIBATAIRE = "celibataire"
    VEUF = "veuf"
    DIVORCE = "divorce"
    SEPARE = "separe"


class RelationshipType(str, Enum):
    """Relationship of a beneficiary to the insured member."""

    CONJOINT = "conjoint"
    ENFANT = "enfant"
    PARENT = "parent"
    AUTRE = "autre"


# =============================================================================
# Provider Enums
# =============================================================================


class ProviderType(str, Enum):
    """Type of healthcare provider."""

    HOPITAL = "hopital"
    CLINIQUE = "clinique"
    LABORATOIRE = "laboratoire"
    PHARMACIE = "pharmacie"
    MEDECIN = "medecin"
    AUTRE = "autre"


# =============================================================================
# Change Notification Enums
# =============================================================================


class ChangeKind(str, Enum):
    """Kind of row change carried by a change notification."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class EntityKind(str, Enum):
    """Table names that emit change notifications."""

    CONTRACTS = "contracts"
    CONTRIBUTIONS = "contributions"
    INSURED = "insured"
    BENEFICIARIES = "beneficiaries"
    CLAIMS = "reimbursements"
    POLICIES = "reimbursement_ceilings"
    PROVIDERS = "healthcare_providers"
    AUDIT_LOGS = "audit_logs"


# =============================================================================
# Audit Enums
# =============================================================================


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    PAYMENT = "payment"


class AuditResourceType(str, Enum):
    """Types of auditable resources."""

    CONTRACT = "contract"
    INSURED = "insured"
    BENEFICIARY = "beneficiary"
    CONTRIBUTION = "contribution"
    REIMBURSEMENT = "reimbursement"
    PROVIDER = "provider"
    SETTINGS = "settings"
