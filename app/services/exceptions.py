"""Domain-specific exceptions for service layer operations.

This module provides a structured exception hierarchy for plan generation,
the credit ledger and the supporting services, enabling proper error
handling, logging, and client response generation.

Architecture:
- ServiceError: Base exception with correlation ID and context support
- Category Base Classes: AuthError, ValidationError, BusinessError,
  InfrastructureError, ExternalServiceError
- Specific Exceptions: Concrete exceptions for plan generation scenarios

Inside the background executor these exceptions never reach an HTTP
caller; their `user_message` is what ends up in the job's `error` field.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union
from http import HTTPStatus


class ErrorSeverity(Enum):
    """Error severity levels for logging and monitoring."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and handling."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    EXTERNAL_SERVICE = "external_service"
    INFRASTRUCTURE = "infrastructure"
    SYSTEM = "system"


class ServiceError(Exception):
    """Base exception for all service layer errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        correlation_id: Request correlation ID for tracing
        details: Additional error context (sanitized for logging)
        user_message: User-friendly message for client display
        severity: Error severity level for logging/monitoring
        category: Error category for classification
        http_status: HTTP status code for API responses
    """

    def __init__(
        self,
        message: str,
        error_code: str = "SERVICE_ERROR",
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.correlation_id = correlation_id
        self.details = details or {}
        self.user_message = user_message or message
        self.severity = severity
        self.category = category
        self.http_status = http_status

    def to_dict(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Convert exception to dictionary for logging or client response.

        Args:
            include_sensitive: Whether to include sensitive details

        Returns:
            Dictionary representation of the error
        """
        result = {
            "error": self.user_message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
        }

        if self.correlation_id:
            result["correlation_id"] = self.correlation_id

        if include_sensitive and self.details:
            result["details"] = self.details
            result["internal_message"] = self.message

        return result

    def __str__(self) -> str:
        """String representation for logging."""
        return f"{self.error_code}: {self.message}"


# =============================================================================
# AUTHENTICATION & AUTHORIZATION ERRORS
# =============================================================================

class AuthError(ServiceError):
    """Base class for authentication and authorization errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        http_status: HTTPStatus = HTTPStatus.UNAUTHORIZED
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=user_message,
            severity=severity,
            category=ErrorCategory.AUTHENTICATION,
            http_status=http_status
        )


class AuthenticationError(AuthError):
    """Missing or invalid bearer credential."""

    def __init__(
        self,
        message: str = "Authentication failed",
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="AUTH_FAILED",
            correlation_id=correlation_id,
            details=details,
            user_message="Unauthorized"
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(ServiceError):
    """Input validation failed."""

    def __init__(
        self,
        field: str,
        message: str,
        correlation_id: Optional[str] = None,
        validation_errors: Optional[List[Dict[str, str]]] = None
    ):
        details = {"field": field, "validation_message": message}
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(
            message=f"Validation failed for {field}: {message}",
            error_code="VALIDATION_ERROR",
            correlation_id=correlation_id,
            details=details,
            user_message=f"Invalid {field}: {message}",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            http_status=HTTPStatus.BAD_REQUEST
        )


class MissingParametersError(ValidationError):
    """Submission lacks context or messages."""

    def __init__(self, missing: List[str], correlation_id: Optional[str] = None):
        super().__init__(
            field=", ".join(missing),
            message="is required and must not be empty",
            correlation_id=correlation_id
        )
        self.error_code = "MISSING_PARAMETERS"
        self.user_message = "Missing required parameters: context and messages"


# =============================================================================
# BUSINESS DOMAIN ERRORS
# =============================================================================

class BusinessError(ServiceError):
    """Base class for business domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        http_status: HTTPStatus = HTTPStatus.BAD_REQUEST,
        category: ErrorCategory = ErrorCategory.BUSINESS_RULE
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=user_message,
            severity=severity,
            category=category,
            http_status=http_status
        )


class ResourceNotFoundError(BusinessError):
    """Base class for resource not found errors."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Union[int, str],
        user_id: Optional[int] = None,
        correlation_id: Optional[str] = None
    ):
        details = {"resource_type": resource_type, "resource_id": resource_id}
        if user_id is not None:
            details["user_id"] = user_id

        super().__init__(
            message=f"{resource_type} not found or access denied",
            error_code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            correlation_id=correlation_id,
            details=details,
            user_message=f"{resource_type} not found",
            http_status=HTTPStatus.NOT_FOUND,
            category=ErrorCategory.RESOURCE_NOT_FOUND
        )


class PlanJobNotFoundError(ResourceNotFoundError):
    """Plan job missing or owned by another user."""

    def __init__(self, job_id: str, user_id: Optional[int] = None, correlation_id: Optional[str] = None):
        super().__init__("Plan job", job_id, user_id=user_id, correlation_id=correlation_id)


class InsufficientCreditsError(BusinessError):
    """Ledger refused a deduction."""

    def __init__(
        self,
        user_id: int,
        required: int,
        partial: bool = False,
        correlation_id: Optional[str] = None
    ):
        if partial:
            user_message = "Not enough credits to generate the remaining days. The plan was partially created."
        else:
            user_message = "Not enough credits to generate a plan. Please top up your credits."
        super().__init__(
            message=f"Insufficient credits for user {user_id}: {required} required",
            error_code="INSUFFICIENT_CREDITS",
            correlation_id=correlation_id,
            details={"user_id": user_id, "required": required, "partial": partial},
            user_message=user_message,
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.PAYMENT_REQUIRED
        )


class PlanParseError(BusinessError):
    """Model output could not be read as a plan document."""

    def __init__(self, phase: str, reason: str, correlation_id: Optional[str] = None):
        super().__init__(
            message=f"Could not parse {phase} response: {reason}",
            error_code="PLAN_PARSE_FAILED",
            correlation_id=correlation_id,
            details={"phase": phase, "reason": reason},
            user_message="The generated plan could not be read. Please try again.",
            severity=ErrorSeverity.MEDIUM,
            http_status=HTTPStatus.BAD_GATEWAY
        )


class MissingTripError(BusinessError):
    """Neither a supplied nor a created trip id is available after the structure phase."""

    def __init__(self, job_id: str, correlation_id: Optional[str] = None):
        super().__init__(
            message=f"No trip id resolved for plan job {job_id}",
            error_code="TRIP_NOT_RESOLVED",
            correlation_id=correlation_id,
            details={"job_id": job_id},
            user_message="The trip could not be created.",
            severity=ErrorSeverity.HIGH,
            http_status=HTTPStatus.INTERNAL_SERVER_ERROR
        )


class RateLimitExceededError(BusinessError):
    """Too many submissions inside the current window."""

    def __init__(self, key: str, limit: int, window_seconds: int, correlation_id: Optional[str] = None):
        super().__init__(
            message=f"Rate limit exceeded for {key}: {limit} per {window_seconds}s",
            error_code="RATE_LIMITED",
            correlation_id=correlation_id,
            details={"key": key, "limit": limit, "window_seconds": window_seconds},
            user_message="Too many requests. Please wait a moment and try again.",
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.TOO_MANY_REQUESTS,
            category=ErrorCategory.RATE_LIMIT
        )


# =============================================================================
# INFRASTRUCTURE & EXTERNAL SERVICE ERRORS
# =============================================================================

class InfrastructureError(ServiceError):
    """Base class for infrastructure-related errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=user_message or "A system error occurred. Please try again later.",
            severity=severity,
            category=ErrorCategory.INFRASTRUCTURE,
            http_status=http_status
        )


class ModelNotConfiguredError(InfrastructureError):
    """No completion model API key is configured."""

    def __init__(self, correlation_id: Optional[str] = None):
        super().__init__(
            message="GOOGLE_GEMINI_API_KEY is not configured",
            error_code="MODEL_NOT_CONFIGURED",
            correlation_id=correlation_id,
            user_message="AI generation is not configured",
            severity=ErrorSeverity.CRITICAL
        )


class ExternalServiceError(ServiceError):
    """Base class for failures of third-party providers."""

    def __init__(
        self,
        provider: str,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        http_status: HTTPStatus = HTTPStatus.BAD_GATEWAY
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details={"provider": provider, **(details or {})},
            user_message=user_message or "An external service failed. Please try again later.",
            severity=severity,
            category=ErrorCategory.EXTERNAL_SERVICE,
            http_status=http_status
        )
        self.provider = provider


class CompletionModelError(ExternalServiceError):
    """Transport, HTTP or timeout failure of the completion model call."""

    def __init__(self, reason: str, model: Optional[str] = None, correlation_id: Optional[str] = None):
        super().__init__(
            provider="gemini",
            message=f"Completion model call failed: {reason}",
            error_code="MODEL_CALL_FAILED",
            correlation_id=correlation_id,
            details={"model": model, "reason": reason},
            user_message="AI generation failed. Your credits have been refunded."
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def create_error_response(
    error: ServiceError,
    include_details: bool = False
) -> Dict[str, Any]:
    """Create standardized error response dictionary.

    Args:
        error: ServiceError instance
        include_details: Whether to include sensitive details

    Returns:
        Standardized error response dictionary
    """
    return error.to_dict(include_sensitive=include_details)


def get_http_status_for_error(error: Exception) -> HTTPStatus:
    """Get appropriate HTTP status code for an exception.

    Args:
        error: Exception instance

    Returns:
        Appropriate HTTP status code
    """
    if isinstance(error, ServiceError):
        return error.http_status

    # Default mappings for non-ServiceError exceptions
    error_mappings = {
        ValueError: HTTPStatus.BAD_REQUEST,
        TypeError: HTTPStatus.BAD_REQUEST,
        NotImplementedError: HTTPStatus.NOT_IMPLEMENTED,
    }

    return error_mappings.get(type(error), HTTPStatus.INTERNAL_SERVER_ERROR)
