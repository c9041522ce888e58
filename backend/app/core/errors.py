"""Error Hierarchy: typed, categorized exceptions for every failure the core can raise.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Validation, authorization and state errors are raised before any write
    - Infrastructure errors (500-level) are the only ones raised after a write began
    - to_response() produces the REST envelope; no internal details in messages

Design Decisions:
    - Single hierarchy with PlatformError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - AlreadySettledError subclasses InvalidStateError: callers catching the general
      transition failure also catch the referral-specific one
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    actor_id: str | None = None
    target_table: str | None = None
    target_id: str | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class PlatformError(Exception):
    """Base exception for all booking platform errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "target_table": self.context.target_table,
                    "target_id": self.context.target_id,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class UnauthenticatedError(PlatformError):
    """No resolvable caller identity."""
    def __init__(self, message: str = "Authentication required", context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(PlatformError):
    """Authenticated caller is not entitled to the requested transition."""
    def __init__(self, message: str = "Forbidden", context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(PlatformError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidStateError(PlatformError):
    """Transition is not legal from the entity's current persisted state."""
    def __init__(
        self,
        message: str,
        current_state: str | None = None,
        context: ErrorContext | None = None,
        code: str = "INVALID_STATE",
    ):
        super().__init__(
            message, code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )
        self.current_state = current_state


class AlreadySettledError(InvalidStateError):
    """Referral has already been marked paid."""
    def __init__(self, referral_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Referral '{referral_id}' is already paid",
            current_state="paid", context=context, code="ALREADY_SETTLED",
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DependencyFailureError(PlatformError):
    """A collaborator (persistence, messaging) call failed."""
    def __init__(
        self,
        message: str,
        code: str = "DEPENDENCY_FAILURE",
        category: ErrorCategory = ErrorCategory.INTERNAL,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(DependencyFailureError):
    """Database operation failed; the surrounding transaction was rolled back."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE, context,
        )
        self.operation = operation


class MessagingGatewayError(DependencyFailureError):
    """Outbound SMS/WhatsApp delivery failed."""
    def __init__(self, message: str, status_code: int | None = None, context: ErrorContext | None = None):
        super().__init__(
            f"Messaging gateway error: {message}",
            "MESSAGING_ERROR", ErrorCategory.EXTERNAL_API, context,
        )
        self.status_code = status_code
