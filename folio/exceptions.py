"""Custom exception hierarchy for Folio."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    ORGANIZATION_NOT_FOUND = "ORGANIZATION_NOT_FOUND"
    MEMBERSHIP_NOT_FOUND = "MEMBERSHIP_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth & rate limiting
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # Uniqueness errors
    CONFLICT = "CONFLICT"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FolioException(Exception):
    """
    Base exception for all Folio errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class DocumentNotFoundError(FolioException):
    """Document not found in database."""

    def __init__(self, doc_id: str):
        super().__init__(
            f"Document not found: {doc_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"doc_id": doc_id}
        )


class OrganizationNotFoundError(FolioException):
    """Organization not found in database."""

    def __init__(self, org_id: str):
        super().__init__(
            f"Organization not found: {org_id}",
            ErrorCode.ORGANIZATION_NOT_FOUND,
            status_code=404,
            details={"organization_id": org_id}
        )


class MembershipNotFoundError(FolioException):
    """No membership links the user to the organization."""

    def __init__(self, user_id: str, org_id: str):
        super().__init__(
            f"Member not found: {user_id} in {org_id}",
            ErrorCode.MEMBERSHIP_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id, "organization_id": org_id}
        )


class UserNotFoundError(FolioException):
    """User not found in database."""

    def __init__(self, user_ref: str):
        super().__init__(
            f"User not found: {user_ref}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user": user_ref}
        )


class ValidationError(FolioException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(FolioException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(FolioException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
            details=details,
        )

    @classmethod
    def for_action(cls, action: str, resource: str) -> "ForbiddenError":
        """Build the standard "you don't have permission" error for an action/resource pair."""
        return cls(
            f"You don't have permission to {action} this {resource.lower()}",
            details={"action": action, "resource": resource.lower()},
        )


class ConflictError(FolioException):
    """Write collides with an existing record."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details,
        )
