"""Port for negotiating a playable stream with the platform."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from roomstream.domain.entities.stream import ResolutionOptions, StreamResult


@runtime_checkable
class StreamNegotiatorPort(Protocol):
    """Signs and sends stream requests, reacting to server response codes.

    Implementations handle signature refresh, quality switching and
    server-assigned alternates internally.
    """

    async def negotiate(
        self,
        address: str,
        quality: str,
        circuit: str,
        options: ResolutionOptions | None = None,
    ) -> StreamResult | None:
        """Resolve a stream for *address*.

        Returns None when the room has nothing to stream (absent, banned
        or offline).
        """
        ...

    def invalidate_signature(self, address: str) -> None:
        """Forget the cached signing function for *address*."""
        ...
