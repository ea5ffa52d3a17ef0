"""
Custom exception classes
"""
import enum

from fastapi import HTTPException


class ErrorCategory(str, enum.Enum):
    """How a failed operation is reported and whether its batch survives"""
    input_rejected = "input_rejected"
    authentication_missing = "authentication_missing"
    authorization_denied = "authorization_denied"
    remote_failure = "remote_failure"
    parse_anomaly = "parse_anomaly"


class CaseTrackError(HTTPException):
    """Base class for errors that carry an ErrorCategory"""
    category: ErrorCategory = ErrorCategory.remote_failure

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class InputRejectedError(CaseTrackError):
    """Raised when an uploaded file is refused before any database call"""
    category = ErrorCategory.input_rejected

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(status_code=status_code, detail=detail)


class AuthenticationMissingError(CaseTrackError):
    """Raised when there is no active session"""
    category = ErrorCategory.authentication_missing

    def __init__(self, detail: str = "You must be logged in to upload cases"):
        super().__init__(status_code=401, detail=detail)


class RemoteFailureError(CaseTrackError):
    """Raised when the database rejects an operation for a non-permission reason"""
    category = ErrorCategory.remote_failure

    def __init__(self, reason: str = "Database operation failed"):
        super().__init__(status_code=502, detail=reason)


class CaseNotFoundError(HTTPException):
    """Raised when case doesn't exist"""
    def __init__(self, case_id: str):
        super().__init__(
            status_code=404,
            detail=f"Case {case_id} not found"
        )


class UserNotFoundError(HTTPException):
    """Raised when a profile doesn't exist"""
    def __init__(self, user_id: str):
        super().__init__(
            status_code=404,
            detail=f"User {user_id} not found"
        )


class UnauthorizedError(HTTPException):
    """Raised when the session is not an administrator"""
    def __init__(self, detail: str = "Admin access required"):
        super().__init__(
            status_code=403,
            detail=detail
        )


class PermissionDeniedError(HTTPException):
    """Raised when a user lacks a named permission"""
    def __init__(self, action: str):
        super().__init__(
            status_code=403,
            detail=f"You don't have permission to {action}"
        )
