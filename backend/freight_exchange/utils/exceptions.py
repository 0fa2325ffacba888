"""
Custom business exceptions for the marketplace services.

WHAT: Domain-specific exceptions raised by the orchestration layer
WHY: Consistent, inspectable failures for missing records and bad transitions
HOW: Custom exception classes with error codes and details
"""

from typing import Optional, List, Dict, Any


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class LoadNotFoundException(BusinessException):
    """Raised when a load is not found."""

    def __init__(self, load_id: str):
        super().__init__(
            message=f"Load not found: {load_id}",
            code="LOAD_NOT_FOUND",
            details={"load_id": load_id}
        )


class RecommendationNotFoundException(BusinessException):
    """Raised when a recommendation is not found."""

    def __init__(self, recommendation_id: str):
        super().__init__(
            message=f"Recommendation not found: {recommendation_id}",
            code="RECOMMENDATION_NOT_FOUND",
            details={"recommendation_id": recommendation_id}
        )


class NegotiationNotFoundException(BusinessException):
    """Raised when a negotiation is not found."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"Negotiation not found: {negotiation_id}",
            code="NEGOTIATION_NOT_FOUND",
            details={"negotiation_id": negotiation_id}
        )


class TripNotFoundException(BusinessException):
    """Raised when a trip is not found."""

    def __init__(self, trip_id: str):
        super().__init__(
            message=f"Trip not found: {trip_id}",
            code="TRIP_NOT_FOUND",
            details={"trip_id": trip_id}
        )


class NegotiationNotActiveException(BusinessException):
    """Raised when attempting to run a negotiation that already finished."""

    def __init__(self, negotiation_id: str, current_status: str):
        super().__init__(
            message=f"Negotiation {negotiation_id} is not active. Current status: {current_status}",
            code="NEGOTIATION_NOT_ACTIVE",
            details={"negotiation_id": negotiation_id, "current_status": current_status}
        )


class ValidationException(BusinessException):
    """Raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field_errors": field_errors} if field_errors else None
        )
