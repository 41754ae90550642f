"""Stream resolution exceptions."""

from __future__ import annotations

from typing import Any


class StreamResolutionError(Exception):
    """Base class for all stream resolution errors."""


class InvalidAddressError(StreamResolutionError):
    """Raised when a room address fails the local syntax check."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid room address: {address!r}")
        self.address = address


class UpstreamProtocolError(StreamResolutionError):
    """The platform answered with something the protocol does not allow.

    Carries whatever context was available (HTTP status, raw body,
    envelope error code, decoded envelope) for diagnosis.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        error_code: int | None = None,
        envelope: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.error_code = error_code
        self.envelope = envelope


class SandboxExecutionError(StreamResolutionError):
    """The vendor script did not yield a working signing function."""


class ResolutionTimeoutError(StreamResolutionError, TimeoutError):
    """The resolution deadline elapsed before the pipeline finished."""
