"""Shared test fixtures for roomstream test suite."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Any

import pytest

from roomstream.domain.exceptions import SandboxExecutionError

ROOM = "123456"

# Minimal stand-in for the vendor signer: probes the browser globals the
# same way the real script does, then hashes with CryptoJS.
VENDOR_SCRIPT = """
var ub98484234 = function (rid, did, tt) {
  var probes = [window.addEventListener, document.createElement, window.navigator];
  for (var i = 0; i < probes.length; i++) {
    if (!/\\[native code\\]/.test(probes[i])) { return "v=bot"; }
  }
  var sign = CryptoJS.MD5(rid + did + tt + "roomstream").toString();
  return "v=220120230101&did=" + did + "&tt=" + tt + "&sign=" + sign;
};
"""


def _expected_sign(address: str, device_id: str, timestamp: int) -> str:
    raw = f"{address}{device_id}{timestamp}roomstream"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


@pytest.fixture()
def vendor_script() -> str:
    return VENDOR_SCRIPT


@pytest.fixture()
def expected_sign() -> Callable[[str, str, int], str]:
    """Python reference for the sign VENDOR_SCRIPT computes."""
    return _expected_sign


# ---------------------------------------------------------------------------
# Envelope factories
# ---------------------------------------------------------------------------


def _default_multirates() -> list[dict[str, Any]]:
    return [
        {"name": "蓝光", "rate": 0, "highBit": 1},
        {"name": "超清", "rate": 3, "highBit": 0},
        {"name": "高清", "rate": 2, "highBit": 0},
    ]


@pytest.fixture()
def play_envelope() -> Callable[..., dict[str, Any]]:
    """Factory for getH5Play envelopes."""

    def _make(
        *,
        error: int = 0,
        rate: int = 3,
        cdn: str = "ws-h5",
        multirates: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return {
            "error": error,
            "msg": "ok",
            "data": {
                "room_id": int(ROOM),
                "rtmp_url": "https://hw-tct.douyucdn.cn/live",
                "rtmp_live": f"{ROOM}rNLcZ.flv?wsAuth=abc&token=h5",
                "rtmp_cdn": cdn,
                "rate": rate,
                "multirates": (
                    multirates if multirates is not None else _default_multirates()
                ),
            },
        }

    return _make


@pytest.fixture()
def script_envelope() -> dict[str, Any]:
    """Successful homeH5Enc envelope carrying the vendor script."""
    return {"error": 0, "data": {f"room{ROOM}": VENDOR_SCRIPT}}


# ---------------------------------------------------------------------------
# Signing fakes
# ---------------------------------------------------------------------------


class FakeSigner:
    """Records every signing call and returns a fixed query string."""

    def __init__(self, label: str = "sig") -> None:
        self.label = label
        self.calls: list[tuple[str, str, int]] = []

    def __call__(self, address: str, device_id: str, timestamp: int) -> str:
        self.calls.append((address, device_id, timestamp))
        return f"v=220120230101&did={device_id}&tt={timestamp}&sign={self.label}"


class FakeExecutor:
    """ScriptExecutorPort fake producing a new FakeSigner per compile."""

    def __init__(self, failures: int = 0) -> None:
        self.compiled: list[str] = []
        self._failures = failures

    def compile(self, script_source: str) -> FakeSigner:
        self.compiled.append(script_source)
        if self._failures > 0:
            self._failures -= 1
            raise SandboxExecutionError("broken vendor script")
        return FakeSigner(label=f"sig{len(self.compiled)}")


class FakeSignatureCache:
    """SignatureCachePort fake that tracks acquire/invalidate calls."""

    def __init__(self) -> None:
        self.acquired: list[tuple[str, bool]] = []
        self.invalidated: list[str] = []
        self.signer = FakeSigner()

    async def acquire(self, address: str, *, force_fresh: bool = False) -> FakeSigner:
        self.acquired.append((address, force_fresh))
        return self.signer

    def invalidate(self, address: str) -> None:
        self.invalidated.append(address)


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def fake_signature_cache() -> FakeSignatureCache:
    return FakeSignatureCache()


@pytest.fixture()
def flaky_executor() -> FakeExecutor:
    """Executor whose first compile raises SandboxExecutionError."""
    return FakeExecutor(failures=1)
