"""Resolve-stream use case.

Room address -> validate -> default quality/circuit -> negotiate under
a deadline -> StreamResult (or None when the room has nothing to play).
"""

from __future__ import annotations

import asyncio

import structlog

from roomstream.domain.entities.catalog import PREFERRED
from roomstream.domain.entities.stream import (
    ResolutionOptions,
    StreamResult,
    validate_address,
)
from roomstream.domain.exceptions import ResolutionTimeoutError
from roomstream.domain.ports.stream_negotiator import StreamNegotiatorPort

log = structlog.get_logger(__name__)


class ResolveStreamUseCase:
    """Public entrypoint for stream resolution and signature invalidation."""

    def __init__(
        self,
        *,
        negotiator: StreamNegotiatorPort,
        default_quality: str = PREFERRED.quality,
        default_circuit: str = PREFERRED.circuit,
        deadline_seconds: float | None = 30.0,
    ) -> None:
        self._negotiator = negotiator
        self._default_quality = default_quality
        self._default_circuit = default_circuit
        self._deadline = deadline_seconds

    async def execute(
        self,
        address: str,
        quality: str | None = None,
        circuit: str | None = None,
        *,
        options: ResolutionOptions | None = None,
        deadline_seconds: float | None = None,
    ) -> StreamResult | None:
        """Resolve *address* to a playable stream.

        Raises:
            InvalidAddressError: address is not a numeric room id.
            UpstreamProtocolError: the platform broke protocol.
            SandboxExecutionError: the vendor script yielded no signer.
            ResolutionTimeoutError: the deadline elapsed mid-pipeline.
        """
        validate_address(address)
        quality = quality or self._default_quality
        circuit = circuit or self._default_circuit
        timeout = deadline_seconds if deadline_seconds is not None else self._deadline

        try:
            return await asyncio.wait_for(
                self._negotiator.negotiate(address, quality, circuit, options),
                timeout=timeout,
            )
        except TimeoutError as e:
            log.warning(
                "stream_resolution_timeout", address=address, timeout=timeout
            )
            raise ResolutionTimeoutError(
                f"Resolution of room {address} exceeded {timeout}s"
            ) from e

    def invalidate_signature(self, address: str) -> None:
        validate_address(address)
        self._negotiator.invalidate_signature(address)
