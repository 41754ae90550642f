"""Douyu wire constants and room address helpers."""

from __future__ import annotations

import re

DEFAULT_BASE_URL = "https://www.douyu.com"

# Global the vendor signing script exports its routine under.
SIGN_ENTRY_POINT = "ub98484234"

# Body of the 403 response when the stream request signature is rejected.
AUTH_FAILED_BODY = "鉴权失败"

# Envelope error codes
ERROR_OK = 0
ERROR_ROOM_ABSENT = -3
ERROR_ROOM_BANNED = -4
ERROR_ROOM_OFFLINE = -5
ERROR_STALE_TIMESTAMP = -9
NO_STREAM_CODES = frozenset({ERROR_ROOM_ABSENT, ERROR_ROOM_BANNED, ERROR_ROOM_OFFLINE})

_ROOM_PAGE_RE = re.compile(r"https?://(?:[\w-]+\.)*douyu\.com(?:/|$)")


def is_room_page_url(text: str) -> bool:
    """True if *text* looks like a douyu.com page URL rather than a room id."""
    return bool(_ROOM_PAGE_RE.match(text.strip()))


def room_page_url(address: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/{address}"


def sign_script_url(address: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/swf_api/homeH5Enc?rids={address}"


def h5_play_url(address: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/lapi/live/getH5Play/{address}"
