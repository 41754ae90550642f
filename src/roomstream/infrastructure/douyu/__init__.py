"""Douyu live platform: signing, stream negotiation and wire helpers."""

from .endpoints import is_room_page_url, room_page_url
from .negotiator import DouyuStreamNegotiator
from .signature_cache import SignatureCache

__all__ = [
    "DouyuStreamNegotiator",
    "SignatureCache",
    "is_room_page_url",
    "room_page_url",
]
