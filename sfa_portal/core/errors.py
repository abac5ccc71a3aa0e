# sfa_portal/core/errors.py
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    INVALID_ARGUMENT = "invalid-argument"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    ALREADY_VOTED = "already-voted"
    FAILED_PRECONDITION = "failed-precondition"
    NOT_INITIALIZED = "not-initialized"
    ALREADY_INITIALIZED = "already-initialized"
    ABORTED = "aborted"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_VOTED: status.HTTP_409_CONFLICT,
    ErrorKind.FAILED_PRECONDITION: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_INITIALIZED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_INITIALIZED: status.HTTP_409_CONFLICT,
    ErrorKind.ABORTED: status.HTTP_409_CONFLICT,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class PortalError(Exception):
    """Base for every domain error surfaced to API clients."""
    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "An internal error occurred."
    retryable: bool = False

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "kind": self.kind.value,
            "details": self.details,
            "retryable": self.retryable,
        }


class Unauthenticated(PortalError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "You must be signed in to perform this action."


class PermissionDenied(PortalError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "You do not have permission to perform this action."


class InvalidArgument(PortalError):
    kind = ErrorKind.INVALID_ARGUMENT
    default_message = "The request contains missing or invalid values."


class NotFound(PortalError):
    kind = ErrorKind.NOT_FOUND
    default_message = "The requested record was not found."


class AlreadyExists(PortalError):
    kind = ErrorKind.ALREADY_EXISTS
    default_message = "A record with the same identity already exists."


class AlreadyVoted(PortalError):
    kind = ErrorKind.ALREADY_VOTED
    default_message = "You have already processed this request."


class FailedPrecondition(PortalError):
    kind = ErrorKind.FAILED_PRECONDITION
    default_message = "The operation is not allowed in the current state."


class RequestClosed(FailedPrecondition):
    default_message = "This request has already been decided and no longer accepts votes."


class NotInitialized(PortalError):
    kind = ErrorKind.NOT_INITIALIZED
    default_message = "SFA ID counter not initialized. Please contact an administrator."


class AlreadyInitialized(PortalError):
    kind = ErrorKind.ALREADY_INITIALIZED
    default_message = "SFA ID counter is already initialized."


class VoteConflict(PortalError):
    kind = ErrorKind.ABORTED
    default_message = "The request was modified concurrently. Please try again."
    retryable = True


class AllocationFailed(PortalError):
    kind = ErrorKind.UNAVAILABLE
    default_message = "Failed to generate an SFA ID. Please try again later."
    retryable = True


class Internal(PortalError):
    kind = ErrorKind.INTERNAL
