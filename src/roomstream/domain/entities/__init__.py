from .catalog import (
    CIRCUITS,
    PREFERRED,
    QUALITIES,
    Preference,
    circuit_label,
    quality_label,
)
from .stream import (
    ResolutionOptions,
    RoomAddress,
    SignaturePayload,
    StreamResult,
    is_valid_address,
    validate_address,
)

__all__ = [
    "CIRCUITS",
    "PREFERRED",
    "QUALITIES",
    "Preference",
    "ResolutionOptions",
    "RoomAddress",
    "SignaturePayload",
    "StreamResult",
    "circuit_label",
    "is_valid_address",
    "quality_label",
    "validate_address",
]
