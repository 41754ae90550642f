"""Stream resolution API endpoints (catalog, resolve, invalidate)."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from roomstream.domain.entities.catalog import CIRCUITS, PREFERRED, QUALITIES
from roomstream.domain.exceptions import (
    InvalidAddressError,
    ResolutionTimeoutError,
    SandboxExecutionError,
    UpstreamProtocolError,
)
from roomstream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["stream"])


def _error(status_code: int, detail: str, **extra: Any) -> JSONResponse:
    return JSONResponse(content={"detail": detail, **extra}, status_code=status_code)


@router.get("/catalog")
async def catalog() -> dict[str, Any]:
    """Known quality and circuit codes with their display labels."""
    return {
        "qualities": dict(QUALITIES),
        "circuits": dict(CIRCUITS),
        "preferred": {"quality": PREFERRED.quality, "circuit": PREFERRED.circuit},
    }


@router.get("/rooms/{address}/stream")
async def resolve_stream(
    address: str,
    request: Request,
    quality: str | None = None,
    circuit: str | None = None,
) -> JSONResponse:
    state = cast(AppState, request.app.state)

    try:
        result = await state.resolve_stream_uc.execute(address, quality, circuit)
    except InvalidAddressError as e:
        return _error(400, str(e))
    except UpstreamProtocolError as e:
        log.warning(
            "stream_upstream_error",
            address=address,
            error=str(e),
            status_code=e.status_code,
            error_code=e.error_code,
        )
        return _error(
            502, str(e), upstream_status=e.status_code, upstream_error=e.error_code
        )
    except SandboxExecutionError as e:
        log.warning("stream_sandbox_error", address=address, error=str(e))
        return _error(502, str(e))
    except ResolutionTimeoutError as e:
        return _error(504, str(e))

    if result is None:
        return _error(404, "no stream available")

    return JSONResponse(content=result.to_dict())


@router.delete("/rooms/{address}/signature", status_code=204)
async def invalidate_signature(address: str, request: Request) -> Response:
    state = cast(AppState, request.app.state)
    try:
        state.resolve_stream_uc.invalidate_signature(address)
    except InvalidAddressError as e:
        return _error(400, str(e))
    return Response(status_code=204)
