"""Error Hierarchy — typed, categorized exceptions for every Writing API failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors are 400-level; infrastructure errors are 500-level
    - to_response() produces the REST envelope; to_sse_event() the SSE envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with WritingAPIError base: one global handler maps all of them
    - ErrorContext as dataclass: observability fields travel with the exception
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
    AUTH = "auth"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    project_id: str | None = None
    document_id: str | None = None
    details: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class WritingAPIError(Exception):
    """Base exception for all Writing API errors."""

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
        body = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
        }
        if self.context.details:
            body["details"] = self.context.details
        if self.context.retry_after_ms is not None:
            body["retry_after_ms"] = self.context.retry_after_ms
        return {"error": body}

    def to_sse_event(self) -> dict:
        """Convert to SSE error payload."""
        return {
            "error": self.message,
            "code": self.code,
            "recoverable": self.severity in (
                ErrorSeverity.INFO, ErrorSeverity.WARNING,
            ),
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidRequestError(WritingAPIError):
    """Request passed schema validation but is semantically incomplete."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class UnauthorizedError(WritingAPIError):
    """Missing or wrong API token."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unauthorized", "UNAUTHORIZED", ErrorCategory.AUTH,
            ErrorSeverity.WARNING, context, 401,
        )


class ProjectBlockedError(WritingAPIError):
    """Writes to a blocked project are refused."""
    def __init__(self, project_name: str, context: ErrorContext | None = None):
        super().__init__(
            f"Project '{project_name}' is blocked",
            "PROJECT_BLOCKED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 403,
        )


class ResourceNotFoundError(WritingAPIError):
    """Requested resource does not exist (or is in the trash)."""
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


class ConflictError(WritingAPIError):
    """Write would violate uniqueness or leave orphans behind."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class ProjectNotConfirmedError(WritingAPIError):
    """Document write attempted on a project still awaiting confirmation."""
    def __init__(self, project_id: str, project_name: str):
        super().__init__(
            "Project not confirmed",
            "PROJECT_NOT_CONFIRMED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING,
            ErrorContext(
                project_id=project_id,
                details={
                    "hint": (
                        'POST /api/v1/projects/confirm with {"name": "<project name>"} '
                        "or /api/v1/projects/{id}/confirm"
                    ),
                    "project": {"id": project_id, "name": project_name},
                },
            ),
            412,
        )


class ConfirmationMismatchError(WritingAPIError):
    """Destructive operation sent without the matching confirmation header."""
    def __init__(self, header: str, expected: str):
        super().__init__(
            f"Confirmation required: send header {header} with the exact value",
            "CONFIRMATION_MISMATCH", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING,
            ErrorContext(details={"header": header, "expected": expected}),
            412,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(WritingAPIError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class LLMAPIError(WritingAPIError):
    """Anthropic chat call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"LLM API error ({api_error_type}): {message}",
            "LLM_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type


class EmbeddingAPIError(WritingAPIError):
    """Embedding provider call failed or returned an unusable payload."""
    def __init__(self, message: str, api_error_type: str, context: ErrorContext | None = None):
        super().__init__(
            f"Embedding API error ({api_error_type}): {message}",
            "EMBEDDING_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.api_error_type = api_error_type
