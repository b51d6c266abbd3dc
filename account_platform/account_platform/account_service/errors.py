"""
Error taxonomy for the account service.

Store adapters raise StoreError subclasses (and NotFound). AccountService
translates those into the caller-facing kinds below, and main.py maps each
kind onto an HTTP status. Raw storage exceptions never reach the transport.

    AccountError
    ├── ValidationError          400
    ├── DuplicateEmail           409
    ├── InvalidCredentials       401
    ├── AuthenticationError      401
    │   ├── TokenMalformed
    │   ├── TokenSignatureInvalid
    │   └── TokenExpired
    ├── NotFound                 404
    ├── InternalError            500
    │   ├── HashingFailure
    │   ├── StoreFailure
    │   └── TokenIssuanceFailure
    └── StoreError               500
        └── ConstraintViolation
"""
from typing import Optional

from fastapi import status


class AccountError(Exception):
    """
    Base exception for all account service errors.

    Attributes:
        message: Human-readable error description
        details: Additional context for logs (never sent to the client for 5xx)
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(AccountError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateEmail(AccountError):
    """An active account already uses this email."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, email: str):
        super().__init__("email already registered", details={"email": email})


class InvalidCredentials(AccountError):
    """Unknown email or wrong password. The two cases are never distinguished."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self):
        super().__init__("invalid credentials")


class AuthenticationError(AccountError):
    """Bearer token missing, malformed, badly signed or expired."""

    status_code = status.HTTP_401_UNAUTHORIZED


class TokenMalformed(AuthenticationError):
    pass


class TokenSignatureInvalid(AuthenticationError):
    pass


class TokenExpired(AuthenticationError):
    pass


class NotFound(AccountError):
    """No active record matches the lookup."""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(AccountError):
    """
    Unexpected failure. The client only ever sees a generic message;
    the original message and details are for the logs.
    """

    public_message = "internal server error"

    def to_dict(self) -> dict:
        return {"error": self.public_message}


class HashingFailure(InternalError):
    pass


class StoreFailure(InternalError):
    pass


class TokenIssuanceFailure(InternalError):
    pass


class StoreError(AccountError):
    """Raised by store adapters for storage-level failures."""

    def to_dict(self) -> dict:
        return {"error": InternalError.public_message}


class ConstraintViolation(StoreError):
    """A write was rejected by a uniqueness constraint."""
