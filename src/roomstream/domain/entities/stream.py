"""Domain entities for live-room stream resolution.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from roomstream.domain.exceptions import InvalidAddressError

RoomAddress = str  # Platform-assigned numeric room id, e.g. "123456"
SignaturePayload = dict[str, str]  # Opaque key/value pairs from the vendor signer

_ADDRESS_RE = re.compile(r"[0-9]+")


def is_valid_address(address: str) -> bool:
    return bool(_ADDRESS_RE.fullmatch(address))


def validate_address(address: str) -> RoomAddress:
    """Return *address* unchanged, or raise InvalidAddressError."""
    if not is_valid_address(address):
        raise InvalidAddressError(address)
    return address


@dataclass(frozen=True)
class ResolutionOptions:
    """Per-call knobs threaded through negotiation retries.

    Never mutated in place: retries derive a new value via
    ``dataclasses.replace``.
    """

    force_fresh_signature: bool = False
    requested_bitrate: int | None = None  # Sent as ``rate``; None means 0


@dataclass(frozen=True)
class StreamResult:
    """Terminal output of a successful resolution."""

    stream_url: str
    quality: str  # Effective quality code, e.g. "超清"
    circuit: str  # Server-assigned CDN code, e.g. "ws-h5"
    quality_display: str = ""  # Empty when the code is unknown to the catalog
    circuit_display: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "stream_url": self.stream_url,
            "quality": self.quality,
            "circuit": self.circuit,
            "quality_display": self.quality_display,
            "circuit_display": self.circuit_display,
        }
