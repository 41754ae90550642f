"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from roomstream.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from roomstream.application.use_cases.resolve_stream import ResolveStreamUseCase
    from roomstream.domain.ports import SignatureCachePort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient
    signature_cache: SignatureCachePort

    # Application Services
    resolve_stream_uc: ResolveStreamUseCase
