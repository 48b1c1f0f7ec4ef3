"""Errors raised by the gateway registration and user registration flows.

Nothing here formats output; the CLI and the HTTP layer decide how to report.
"""
from __future__ import annotations


class RegistrationError(Exception):
    """Base class for every msreg error."""


class ConfigError(RegistrationError):
    """Configuration file missing, unreadable or invalid."""


class InvalidArgument(RegistrationError):
    """A required value was empty (e.g. API name before lookup)."""


class TransportError(RegistrationError):
    """DNS, connect, read or timeout failure talking to a remote endpoint."""


class DecodeError(RegistrationError):
    """A response body could not be decoded as the expected JSON object."""


class RemoteRejected(RegistrationError):
    """The remote answered with a status the operation does not accept."""

    def __init__(self, status: int, reason: str = "") -> None:
        self.status = status
        self.reason = reason
        super().__init__(f"{status} {reason}".strip())


class CreateConflict(RemoteRejected):
    """Upstream creation was refused by the gateway."""


class NoAddressFound(RegistrationError):
    pass


class InterfaceEnumerationError(RegistrationError):
    pass


class UpstreamServiceError(RegistrationError):
    """The user or user-profile service returned a non-success status."""

    def __init__(self, status: int, detail: object = None) -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"HTTP {status}: {detail!r}")


class MailError(RegistrationError):
    pass
