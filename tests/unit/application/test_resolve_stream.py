"""Tests for ResolveStreamUseCase."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from roomstream.application.use_cases.resolve_stream import ResolveStreamUseCase
from roomstream.domain.entities.stream import ResolutionOptions, StreamResult
from roomstream.domain.exceptions import (
    InvalidAddressError,
    ResolutionTimeoutError,
    UpstreamProtocolError,
)

_RESULT = StreamResult(
    stream_url="https://hw-tct.douyucdn.cn/live/123456rNLcZ.flv",
    quality="超清",
    circuit="ws-h5",
    quality_display="超清",
    circuit_display="主线-H5 (网宿)",
)


def _make_negotiator(result: StreamResult | None = _RESULT) -> MagicMock:
    negotiator = MagicMock()
    negotiator.negotiate = AsyncMock(return_value=result)
    return negotiator


class TestExecute:
    async def test_applies_preferred_defaults(self) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(negotiator=negotiator)

        result = await uc.execute("123456")

        assert result == _RESULT
        negotiator.negotiate.assert_awaited_once_with("123456", "超清", "ws-h5", None)

    async def test_configured_defaults(self) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(
            negotiator=negotiator, default_quality="蓝光", default_circuit="tct-h5"
        )

        await uc.execute("123456")

        negotiator.negotiate.assert_awaited_once_with("123456", "蓝光", "tct-h5", None)

    async def test_explicit_quality_and_circuit_win(self) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(negotiator=negotiator)
        options = ResolutionOptions(force_fresh_signature=True)

        await uc.execute("123456", "高清", "ali-h5", options=options)

        negotiator.negotiate.assert_awaited_once_with(
            "123456", "高清", "ali-h5", options
        )

    async def test_none_result_passes_through(self) -> None:
        uc = ResolveStreamUseCase(negotiator=_make_negotiator(result=None))
        assert await uc.execute("123456") is None

    @pytest.mark.parametrize("address", ["", "abc", "12a", "https://www.douyu.com/1"])
    async def test_invalid_address_never_reaches_negotiator(
        self, address: str
    ) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(negotiator=negotiator)

        with pytest.raises(InvalidAddressError):
            await uc.execute(address)

        negotiator.negotiate.assert_not_awaited()

    async def test_errors_propagate(self) -> None:
        negotiator = MagicMock()
        negotiator.negotiate = AsyncMock(
            side_effect=UpstreamProtocolError("boom", error_code=-1)
        )
        uc = ResolveStreamUseCase(negotiator=negotiator)

        with pytest.raises(UpstreamProtocolError) as exc_info:
            await uc.execute("123456")

        assert exc_info.value.error_code == -1


class TestDeadline:
    async def test_deadline_raises_timeout_error(self) -> None:
        async def _hang(*args: object) -> StreamResult:
            await asyncio.sleep(10)
            return _RESULT

        negotiator = MagicMock()
        negotiator.negotiate = _hang
        uc = ResolveStreamUseCase(negotiator=negotiator, deadline_seconds=0.05)

        with pytest.raises(ResolutionTimeoutError):
            await uc.execute("123456")

    async def test_per_call_deadline_overrides_default(self) -> None:
        async def _slow(*args: object) -> StreamResult:
            await asyncio.sleep(0.05)
            return _RESULT

        negotiator = MagicMock()
        negotiator.negotiate = _slow
        uc = ResolveStreamUseCase(negotiator=negotiator, deadline_seconds=0.01)

        assert await uc.execute("123456", deadline_seconds=5.0) == _RESULT

    async def test_timeout_error_is_builtin_timeout(self) -> None:
        async def _hang(*args: object) -> StreamResult:
            await asyncio.sleep(10)
            return _RESULT

        negotiator = MagicMock()
        negotiator.negotiate = _hang
        uc = ResolveStreamUseCase(negotiator=negotiator, deadline_seconds=0.01)

        with pytest.raises(TimeoutError):
            await uc.execute("123456")


class TestInvalidate:
    def test_delegates_to_negotiator(self) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(negotiator=negotiator)

        uc.invalidate_signature("123456")

        negotiator.invalidate_signature.assert_called_once_with("123456")

    def test_invalid_address_rejected(self) -> None:
        negotiator = _make_negotiator()
        uc = ResolveStreamUseCase(negotiator=negotiator)

        with pytest.raises(InvalidAddressError):
            uc.invalidate_signature("room-1")

        negotiator.invalidate_signature.assert_not_called()
