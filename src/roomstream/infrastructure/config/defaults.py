"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "roomstream",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
        ),
    },
    "douyu": {
        "base_url": "https://www.douyu.com",
        "default_quality": "超清",
        "default_circuit": "ws-h5",
        "deadline_seconds": 30.0,
    },
    "sandbox": {
        "time_limit_seconds": 1.0,
        "memory_limit_bytes": 32 * 1024 * 1024,
        "refetch_on_failure": False,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
