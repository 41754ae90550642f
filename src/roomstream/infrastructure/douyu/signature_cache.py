"""Per-room cache of compiled vendor signing functions.

Entries never expire on their own; they are replaced on a forced refresh
and dropped by :meth:`SignatureCache.invalidate`. Concurrent acquisitions
for the same room share one in-flight fetch+compile task so the vendor
script is downloaded and executed once.
"""

from __future__ import annotations

import asyncio
import functools

import httpx
import structlog

from roomstream.domain.exceptions import SandboxExecutionError, UpstreamProtocolError
from roomstream.domain.ports.signing import ScriptExecutorPort, SigningFunction
from roomstream.infrastructure.douyu.endpoints import (
    DEFAULT_BASE_URL,
    ERROR_OK,
    sign_script_url,
)
from roomstream.infrastructure.douyu.envelope import parse_envelope

log = structlog.get_logger(__name__)


class SignatureCache:
    """Fetch-or-reuse store for signing functions, keyed by room address.

    Args:
        http_client: Shared async HTTP client.
        executor: Sandbox that turns vendor source into a signer.
        base_url: Platform origin for the ``homeH5Enc`` endpoint.
        refetch_on_failure: Re-download and compile once more when the
            sandbox rejects the first script.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        executor: ScriptExecutorPort,
        *,
        base_url: str = DEFAULT_BASE_URL,
        refetch_on_failure: bool = False,
    ) -> None:
        self._http = http_client
        self._executor = executor
        self._base_url = base_url
        self._refetch_on_failure = refetch_on_failure
        self._entries: dict[str, SigningFunction] = {}
        self._inflight: dict[str, asyncio.Task[SigningFunction]] = {}

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def acquire(
        self, address: str, *, force_fresh: bool = False
    ) -> SigningFunction:
        """Return the signer for *address*, fetching one if needed."""
        if not force_fresh:
            cached = self._entries.get(address)
            if cached is not None:
                log.debug("signature_cache_hit", address=address)
                return cached

        task = self._inflight.get(address)
        if task is None:
            task = asyncio.create_task(self._refresh(address))
            self._inflight[address] = task
            task.add_done_callback(functools.partial(self._forget_inflight, address))
        else:
            log.debug("signature_refresh_joined", address=address)

        return await asyncio.shield(task)

    def invalidate(self, address: str) -> None:
        """Drop the signer for *address*; idempotent."""
        if self._entries.pop(address, None) is not None:
            log.info("signature_invalidated", address=address)

    def _forget_inflight(
        self, address: str, task: asyncio.Task[SigningFunction]
    ) -> None:
        if self._inflight.get(address) is task:
            del self._inflight[address]
        if not task.cancelled():
            # Mark the exception retrieved; awaiting callers re-raise it.
            task.exception()

    async def _refresh(self, address: str) -> SigningFunction:
        script = await self._fetch_script(address)
        try:
            signer = self._executor.compile(script)
        except SandboxExecutionError:
            if not self._refetch_on_failure:
                raise
            log.warning("signature_compile_retry", address=address)
            signer = self._executor.compile(await self._fetch_script(address))

        self._entries[address] = signer
        log.info("signature_refreshed", address=address)
        return signer

    async def _fetch_script(self, address: str) -> str:
        url = sign_script_url(address, self._base_url)
        try:
            resp = await self._http.get(url)
        except httpx.HTTPError as e:
            raise UpstreamProtocolError(
                f"Sign script request failed: {e}"
            ) from e

        if resp.status_code != 200:
            raise UpstreamProtocolError(
                f"Unexpected status code, {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        envelope = parse_envelope(resp)
        if envelope.error != ERROR_OK:
            raise UpstreamProtocolError(
                f"Unexpected error code, {envelope.error}",
                status_code=resp.status_code,
                error_code=envelope.error,
                envelope=envelope.model_dump(),
            )

        data = envelope.data if isinstance(envelope.data, dict) else {}
        script = data.get(f"room{address}")
        if not isinstance(script, str) or not script:
            raise UpstreamProtocolError(
                "Unexpected result with homeH5Enc",
                status_code=resp.status_code,
                body=resp.text,
                envelope=envelope.model_dump(),
            )

        log.debug("signature_script_fetched", address=address, chars=len(script))
        return script
