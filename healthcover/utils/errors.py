"""
Custom Exceptions
Domain errors raised by the services and the HTTP errors raised by the routes.
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
"""

from typing import Optional

from fastapi import HTTPException, status


# =============================================================================
# Domain Errors
# =============================================================================


class HealthCoverError(Exception):
    """Base exception for all domain errors."""

    pass


class InvalidInput(HealthCoverError):
    """Raised when caller data is malformed or out of range."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotEligible(HealthCoverError):
    """Raised when a claim is attempted for an insured without a paid contract."""

    pass


class InvalidTransition(HealthCoverError):
    """Raised when a status target is illegal for the claim."""

    pass


class StatusConflict(InvalidTransition):
    """Raised when the claim status changed since the caller read it."""

    def __init__(self, message: str, expected: str, actual: str):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class MissingApproval(HealthCoverError):
    """Raised when validation is attempted without an approved amount."""

    pass


class InvalidAmount(HealthCoverError):
    """Raised when a paid amount is missing, negative or above the approved amount."""

    pass


class NotFound(HealthCoverError):
    """Base exception for missing records."""

    pass


class ClaimNotFoundError(NotFound):
    """Raised when claim is not found."""

    pass


class InsuredNotFoundError(NotFound):
    """Raised when insured member is not found."""

    pass


class ContractNotFoundError(NotFound):
    """Raised when contract is not found."""

    pass


class ContributionNotFoundError(NotFound):
    """Raised when contribution is not found."""

    pass


class PolicyNotFoundError(NotFound):
    """Raised when reimbursement policy is not found."""

    pass


class ProviderNotFoundError(NotFound):
    """Raised when healthcare provider is not found."""

    pass


class DuplicatePolicyError(HealthCoverError):
    """Raised when a second active policy is written for a care category."""

    pass


class StoreFailure(HealthCoverError):
    """Raised when the durable store or the notification feed fails."""

    pass


# =============================================================================
# HTTP Errors
# =============================================================================


class NotFoundError(HTTPException):
    """Raised when resource not found"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ValidationError(HTTPException):
    """Raised when validation fails"""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class ForbiddenError(HTTPException):
    """Raised when the operation is not allowed for the target record"""

    def __init__(self, detail: str = "Operation not allowed"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class ConflictError(HTTPException):
    """Raised when resource conflict occurs"""

    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class ServiceUnavailableError(HTTPException):
    """Raised when the store is unreachable"""

    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )


def to_http_error(exc: HealthCoverError) -> HTTPException:
    """Map a domain error onto the HTTP error presented to the caller."""
    message = str(exc)
    if isinstance(exc, NotFound):
        return NotFoundError(message)
    if isinstance(exc, NotEligible):
        return ForbiddenError(message)
    if isinstance(exc, (InvalidTransition, DuplicatePolicyError)):
        return ConflictError(message)
    if isinstance(exc, (InvalidInput, MissingApproval, InvalidAmount)):
        return ValidationError(message)
    if isinstance(exc, StoreFailure):
        return ServiceUnavailableError(message)
    return ValidationError(message)
