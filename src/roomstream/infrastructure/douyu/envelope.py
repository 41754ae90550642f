"""Pydantic models for Douyu ``{error, data}`` JSON envelopes."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from roomstream.domain.exceptions import UpstreamProtocolError


class Envelope(BaseModel):
    """Generic platform envelope; ``data`` is validated per endpoint."""

    model_config = ConfigDict(extra="allow")

    error: int
    msg: str = ""
    data: Any = None


class MultiRate(BaseModel):
    """One quality tier offered by a room."""

    model_config = ConfigDict(extra="ignore")

    name: str
    rate: int


class H5PlayData(BaseModel):
    """``data`` block of a ``getH5Play`` response."""

    model_config = ConfigDict(extra="ignore")

    rtmp_url: str
    rtmp_live: str
    rtmp_cdn: str
    rate: int
    multirates: list[MultiRate] = Field(default_factory=list)

    @property
    def stream_url(self) -> str:
        return f"{self.rtmp_url}/{self.rtmp_live}"

    def find_by_name(self, name: str) -> MultiRate | None:
        return next((r for r in self.multirates if r.name == name), None)

    def find_by_rate(self, rate: int) -> MultiRate | None:
        return next((r for r in self.multirates if r.rate == rate), None)


def parse_envelope(response: httpx.Response) -> Envelope:
    """Decode and validate an envelope, raising UpstreamProtocolError."""
    try:
        payload = response.json()
    except ValueError as e:
        raise UpstreamProtocolError(
            "Response body is not valid JSON",
            status_code=response.status_code,
            body=response.text,
        ) from e

    try:
        return Envelope.model_validate(payload)
    except ValidationError as e:
        raise UpstreamProtocolError(
            "Response is not a valid envelope",
            status_code=response.status_code,
            body=response.text,
        ) from e


def parse_h5_play_data(envelope: Envelope) -> H5PlayData:
    try:
        return H5PlayData.model_validate(envelope.data)
    except ValidationError as e:
        raise UpstreamProtocolError(
            "Stream envelope is missing stream fields",
            error_code=envelope.error,
            envelope=envelope.model_dump(),
        ) from e
