"""
Error taxonomy for the user service gateway.

Timeouts and business rejections are not exceptions: the bridge returns
``None`` for "no reply" and the acknowledgment carries ``success=False``.
"""

from __future__ import annotations


class UserServiceError(Exception):
    """Base class for all gateway errors."""


class CredentialError(UserServiceError):
    """The bearer token is missing, malformed, expired or badly signed."""


class AuthorizationDenied(UserServiceError):
    """The credential does not carry the role required by the operation."""

    def __init__(self, operation: str, required_role: str) -> None:
        super().__init__(f"operation={operation} requires role={required_role}")
        self.operation = operation
        self.required_role = required_role


class TransportUnavailable(UserServiceError):
    """Publishing to the broker failed."""


class MalformedReply(UserServiceError):
    """A reply arrived but is not a valid acknowledgment envelope."""


class MalformedEnvelope(UserServiceError):
    """An inbound operation envelope could not be decoded."""
