"""Tests for QuickJsScriptExecutor (runs the real QuickJS engine)."""

from __future__ import annotations

import hashlib
from collections.abc import Callable

import pytest

from roomstream.domain.exceptions import SandboxExecutionError
from roomstream.domain.ports.signing import SigningFunction
from roomstream.infrastructure.sandbox.quickjs_executor import (
    NATIVE_CODE_SENTINEL,
    QuickJsScriptExecutor,
)

_ENTRY = "ub98484234"


def _executor(**kwargs: float | int) -> QuickJsScriptExecutor:
    return QuickJsScriptExecutor(entry_point=_ENTRY, **kwargs)  # type: ignore[arg-type]


def _probe(expression: str) -> str:
    """Script whose signer returns String(<expression>)."""
    return f"var {_ENTRY} = function () {{ return String({expression}); }};"


class TestCompile:
    def test_returns_signing_function(self, vendor_script: str) -> None:
        signer = _executor().compile(vendor_script)
        assert isinstance(signer, SigningFunction)

    def test_signs_with_md5(
        self,
        vendor_script: str,
        expected_sign: Callable[[str, str, int], str],
    ) -> None:
        signer = _executor().compile(vendor_script)
        did = "0123456789abcdef0123456789abcdef"
        out = signer("123456", did, 1700000000)
        assert out == (
            f"v=220120230101&did={did}&tt=1700000000"
            f"&sign={expected_sign('123456', did, 1700000000)}"
        )

    def test_md5_matches_hashlib_for_unicode(self) -> None:
        signer = _executor().compile(_probe('CryptoJS.MD5("超清直播").toString()'))
        assert signer("1", "d", 1) == hashlib.md5("超清直播".encode()).hexdigest()

    def test_md5_string_concatenation(self) -> None:
        signer = _executor().compile(_probe('"" + CryptoJS.MD5("abc")'))
        assert signer("1", "d", 1) == "900150983cd24fb0d6963f7d28e17f72"

    @pytest.mark.parametrize(
        "message",
        [
            "",
            "a",
            "message digest",
            "x" * 55,
            "x" * 56,
            "x" * 64,
            "1234567890" * 20,
            "蓝光4M-ws-h5",
            "room \U0001f3a5 live",
        ],
    )
    def test_md5_matches_hashlib(self, message: str) -> None:
        signer = _executor().compile(
            f"var {_ENTRY} = function (m) {{ return CryptoJS.MD5(m).toString(); }};"
        )
        assert signer(message, "d", 1) == hashlib.md5(message.encode()).hexdigest()

    def test_md5_known_vector(self) -> None:
        signer = _executor().compile(_probe('CryptoJS.MD5("").toString()'))
        assert signer("1", "d", 1) == "d41d8cd98f00b204e9800998ecf8427e"

    def test_md5_runs_under_time_limit(self) -> None:
        # Hashing inside the limited context must not need the host.
        signer = _executor(time_limit_seconds=0.5).compile(
            _probe('CryptoJS.MD5("abc").toString()')
        )
        assert signer("1", "d", 1) == "900150983cd24fb0d6963f7d28e17f72"

    def test_signer_receives_arguments(self) -> None:
        signer = _executor().compile(
            f"var {_ENTRY} = function (rid, did, tt) {{ return rid + '|' + did + '|' + tt; }};"
        )
        assert signer("123456", "abc", 1700000000) == "123456|abc|1700000000"

    def test_signer_can_be_called_repeatedly(self, vendor_script: str) -> None:
        signer = _executor().compile(vendor_script)
        first = signer("1", "a" * 32, 1)
        second = signer("1", "b" * 32, 2)
        assert first != second

    def test_invalid_entry_point_rejected(self) -> None:
        with pytest.raises(ValueError):
            QuickJsScriptExecutor(entry_point="ub98484234; evil()")


class TestNativeDisguise:
    @pytest.mark.parametrize(
        "expression",
        [
            "window.addEventListener",
            "document.createElement",
            "window.anythingAtAll",
            "document['x' + 42]",
            "window.navigator",
        ],
    )
    def test_any_property_looks_native(self, expression: str) -> None:
        signer = _executor().compile(_probe(expression))
        assert signer("1", "d", 1) == NATIVE_CODE_SENTINEL

    def test_native_check_passes(self, vendor_script: str) -> None:
        signer = _executor().compile(vendor_script)
        assert signer("1", "d", 1) != "v=bot"


class TestIsolation:
    @pytest.mark.parametrize(
        "name",
        ["fetch", "require", "process", "XMLHttpRequest", "std", "os", "navigator"],
    )
    def test_no_host_capabilities(self, name: str) -> None:
        signer = _executor().compile(_probe(f"typeof {name}"))
        assert signer("1", "d", 1) == "undefined"

    def test_each_compile_gets_fresh_globals(self) -> None:
        executor = _executor()
        executor.compile(f"var leaked = 'yes'; var {_ENTRY} = function () {{ return 'a'; }};")
        signer = executor.compile(_probe("typeof leaked"))
        assert signer("1", "d", 1) == "undefined"


class TestFailures:
    def test_syntax_error(self) -> None:
        with pytest.raises(SandboxExecutionError):
            _executor().compile("var = ;")

    def test_missing_entry_point(self) -> None:
        with pytest.raises(SandboxExecutionError):
            _executor().compile("var somethingElse = 1;")

    def test_entry_point_not_callable(self) -> None:
        with pytest.raises(SandboxExecutionError):
            _executor().compile(f"var {_ENTRY} = 42;")

    def test_script_throws(self) -> None:
        with pytest.raises(SandboxExecutionError):
            _executor().compile("throw new Error('detected automation');")

    def test_signer_throws(self) -> None:
        signer = _executor().compile(
            f"var {_ENTRY} = function () {{ throw new Error('nope'); }};"
        )
        with pytest.raises(SandboxExecutionError):
            signer("1", "d", 1)

    def test_signer_returns_non_string(self) -> None:
        signer = _executor().compile(f"var {_ENTRY} = function () {{ return 7; }};")
        with pytest.raises(SandboxExecutionError):
            signer("1", "d", 1)

    def test_runaway_script_is_interrupted(self) -> None:
        with pytest.raises(SandboxExecutionError):
            _executor(time_limit_seconds=0.2).compile("while (true) {}")
