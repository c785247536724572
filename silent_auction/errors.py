"""
Error types for the Silent Auction admin panel.

Validation errors (InvalidInput, DuplicateKey, NotFound) are raised by the
ledger before any state change. Remote store errors are raised by the
database wrapper and converted into RemoteWriteFailed by the sync layer
when a write is rejected.
"""

from typing import Optional


class AuctionError(Exception):
    """Base class for all auction panel errors."""


# =============================================================================
# VALIDATION
# =============================================================================

class InvalidInput(AuctionError):
    """A required field is missing or malformed."""


class DuplicateKey(AuctionError):
    """A natural key (item id or bid number) is already in use."""


class NotFound(AuctionError):
    """An item or attendee referenced by key does not exist."""


# =============================================================================
# REMOTE STORE
# =============================================================================

class RemoteStoreError(AuctionError):
    """Generic transport or backend failure. The operator may retry."""


class ConfigurationError(RemoteStoreError):
    """The backend is not configured or its tables have not been created."""


class AccessPolicyError(RemoteStoreError):
    """The backend rejected the request because of its access policy (RLS)."""


class RemoteWriteFailed(AuctionError):
    """
    A remote write was rejected.

    Carries the attempted operation so the caller can undo its optimistic
    in-memory change.
    """

    def __init__(self, operation, cause: Optional[Exception] = None):
        self.operation = operation
        self.cause = cause
        message = f"Remote write failed: {operation}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)


# =============================================================================
# AUTHENTICATION
# =============================================================================

class AuthenticationFailed(AuctionError):
    """Sign-in or sign-up was rejected by the identity provider."""


class AccessDenied(AuctionError):
    """The signed-in identity is not on the approved users list."""
