"""Douyu stream negotiator: signs ``getH5Play`` requests and reacts to codes.

Flow per attempt: acquire signer -> sign (room, device id, timestamp)
-> POST signed form -> classify HTTP status -> classify envelope code
-> reconcile quality -> assemble result.

Two retries exist and each may happen at most once per call:

1. Signature escalation: a 403 ``鉴权失败`` re-signs with a freshly
   fetched vendor script.
2. Quality switch: if the desired quality is offered but a different
   bitrate is in effect, re-request with that quality's ``rate``.
"""

from __future__ import annotations

import math
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from urllib.parse import parse_qsl

import httpx
import structlog

from roomstream.domain.entities.catalog import circuit_label, quality_label
from roomstream.domain.entities.stream import (
    ResolutionOptions,
    SignaturePayload,
    StreamResult,
)
from roomstream.domain.exceptions import UpstreamProtocolError
from roomstream.domain.ports.signing import SignatureCachePort
from roomstream.infrastructure.douyu.endpoints import (
    AUTH_FAILED_BODY,
    DEFAULT_BASE_URL,
    ERROR_OK,
    ERROR_STALE_TIMESTAMP,
    NO_STREAM_CODES,
    h5_play_url,
    room_page_url,
)
from roomstream.infrastructure.douyu.envelope import (
    H5PlayData,
    parse_envelope,
    parse_h5_play_data,
)

log = structlog.get_logger(__name__)


def new_device_id() -> str:
    """Random 32 hex character device id, fresh for every attempt."""
    return uuid.uuid4().hex


def unix_timestamp() -> int:
    return math.ceil(time.time())


def parse_signature(signed: str) -> SignaturePayload:
    """Split the vendor's query-string output into form fields."""
    return dict(parse_qsl(signed, keep_blank_values=True))


def _is_auth_failure(resp: httpx.Response) -> bool:
    return resp.status_code == 403 and resp.text.strip() == AUTH_FAILED_BODY


class DouyuStreamNegotiator:
    """Resolves Douyu rooms to playable stream URLs."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        signatures: SignatureCachePort,
        *,
        base_url: str = DEFAULT_BASE_URL,
        device_id_factory: Callable[[], str] = new_device_id,
        clock: Callable[[], int] = unix_timestamp,
    ) -> None:
        self._http = http_client
        self._signatures = signatures
        self._base_url = base_url
        self._device_id_factory = device_id_factory
        self._clock = clock

    def invalidate_signature(self, address: str) -> None:
        self._signatures.invalidate(address)

    async def negotiate(
        self,
        address: str,
        quality: str,
        circuit: str,
        options: ResolutionOptions | None = None,
    ) -> StreamResult | None:
        opts = options or ResolutionOptions()
        escalated = opts.force_fresh_signature
        switched = False

        while True:
            resp = await self._request_stream(address, circuit, opts)

            if resp.status_code != 200:
                if _is_auth_failure(resp) and not escalated:
                    log.info("stream_signature_rejected", address=address)
                    escalated = True
                    opts = replace(opts, force_fresh_signature=True)
                    continue
                raise UpstreamProtocolError(
                    f"Unexpected status code, {resp.status_code}, {resp.text}",
                    status_code=resp.status_code,
                    body=resp.text,
                )

            envelope = parse_envelope(resp)

            if envelope.error in NO_STREAM_CODES:
                log.info(
                    "stream_unavailable", address=address, error_code=envelope.error
                )
                return None

            if envelope.error == ERROR_STALE_TIMESTAMP:
                # The next resolution re-signs; this response is still used.
                log.warning("stream_timestamp_stale", address=address)
                self._signatures.invalidate(address)
            elif envelope.error != ERROR_OK:
                log.error(
                    "stream_unexpected_error_code",
                    address=address,
                    envelope=envelope.model_dump(),
                )
                raise UpstreamProtocolError(
                    f"Unexpected error code, {envelope.error}",
                    status_code=resp.status_code,
                    error_code=envelope.error,
                    envelope=envelope.model_dump(),
                )

            data = parse_h5_play_data(envelope)
            target = data.find_by_name(quality)

            if target is not None and target.rate != data.rate:
                if not switched:
                    log.info(
                        "stream_quality_switch",
                        address=address,
                        quality=quality,
                        rate=target.rate,
                        current_rate=data.rate,
                    )
                    switched = True
                    opts = replace(
                        opts, requested_bitrate=target.rate, force_fresh_signature=False
                    )
                    continue
                log.warning(
                    "stream_quality_switch_ignored",
                    address=address,
                    quality=quality,
                    rate=target.rate,
                    current_rate=data.rate,
                )
                target = None

            effective_quality = quality if target is not None else _quality_in_effect(data)
            return self._assemble(address, data, effective_quality)

    async def _request_stream(
        self, address: str, circuit: str, opts: ResolutionOptions
    ) -> httpx.Response:
        signer = await self._signatures.acquire(
            address, force_fresh=opts.force_fresh_signature
        )
        signed = signer(address, self._device_id_factory(), self._clock())

        form: dict[str, str | int] = dict(parse_signature(signed))
        form.update(
            {
                "cdn": circuit,
                "rate": opts.requested_bitrate or 0,
                "iar": 0,
                "ive": 0,
            }
        )

        url = h5_play_url(address, self._base_url)
        try:
            return await self._http.post(url, data=form)
        except httpx.HTTPError as e:
            raise UpstreamProtocolError(f"Stream request failed: {e}") from e

    def _assemble(self, address: str, data: H5PlayData, quality: str) -> StreamResult:
        result = StreamResult(
            stream_url=data.stream_url,
            quality=quality,
            circuit=data.rtmp_cdn,
            quality_display=quality_label(quality),
            circuit_display=circuit_label(data.rtmp_cdn),
        )
        log.info(
            "stream_resolved",
            address=address,
            page=room_page_url(address, self._base_url),
            quality=result.quality,
            circuit=result.circuit,
        )
        return result


def _quality_in_effect(data: H5PlayData) -> str:
    effective = data.find_by_rate(data.rate)
    if effective is None:
        raise UpstreamProtocolError(
            f"No offered quality matches the bitrate in effect ({data.rate})",
            envelope=data.model_dump(),
        )
    return effective.name
