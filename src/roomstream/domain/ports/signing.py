"""Ports for producing request signatures from vendor-supplied code."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SigningFunction(Protocol):
    """Opaque vendor routine: (address, device id, timestamp) -> signature.

    The returned string is a query-string encoded payload whose fields are
    attached to the stream request without interpretation.
    """

    def __call__(self, address: str, device_id: str, timestamp: int) -> str: ...


@runtime_checkable
class ScriptExecutorPort(Protocol):
    """Runs untrusted vendor source in isolation and returns its signer.

    Implementations must expose only an enumerated set of inert globals
    to the script and raise ``SandboxExecutionError`` when the script
    does not evaluate or does not yield a callable.
    """

    def compile(self, script_source: str) -> SigningFunction:
        """Evaluate *script_source* and return the exported signing function."""
        ...


@runtime_checkable
class SignatureCachePort(Protocol):
    """Process-wide room address -> signing function mapping."""

    async def acquire(
        self, address: str, *, force_fresh: bool = False
    ) -> SigningFunction:
        """Return a cached signer, or fetch and compile a fresh one."""
        ...

    def invalidate(self, address: str) -> None:
        """Drop the cached signer for *address* (no-op if absent)."""
        ...
