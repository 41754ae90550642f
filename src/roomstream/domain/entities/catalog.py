"""Quality and circuit catalog for Douyu live rooms.

Static lookup tables mapping protocol codes to display labels. Unknown
codes resolve to an empty label so that resolution never fails on a code
the catalog has not seen yet.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

# Quality codes are already human-readable Chinese labels on the wire.
QUALITIES: Mapping[str, str] = MappingProxyType(
    {
        "流畅": "流畅",
        "高清": "高清",
        "超清": "超清",
        "蓝光": "蓝光",
        "蓝光4M": "蓝光4M",
        "蓝光8M": "蓝光8M",
        "蓝光10M": "蓝光10M",
    }
)

CIRCUITS: Mapping[str, str] = MappingProxyType(
    {
        "ws": "主线 (网宿)",
        "ws-h5": "主线-H5 (网宿)",
        "tct": "备用线路5 (腾讯云)",
        "tct-h5": "备用线路5-H5 (腾讯云)",
        "ali-h5": "备用线路6 (阿里云)",
        "ws2": "备用线路2 (网宿2)",
        "dl": "备用线路3 (帝联)",
    }
)


@dataclass(frozen=True)
class Preference:
    """Default (quality, circuit) pair used when a caller has no preference."""

    quality: str
    circuit: str


PREFERRED = Preference(quality="超清", circuit="ws-h5")


def quality_label(code: str) -> str:
    return QUALITIES.get(code, "")


def circuit_label(code: str) -> str:
    return CIRCUITS.get(code, "")
