"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from roomstream.application.use_cases.resolve_stream import ResolveStreamUseCase
from roomstream.infrastructure.config.schema import AppConfig
from roomstream.infrastructure.douyu.endpoints import SIGN_ENTRY_POINT
from roomstream.infrastructure.douyu.negotiator import DouyuStreamNegotiator
from roomstream.infrastructure.douyu.signature_cache import SignatureCache
from roomstream.infrastructure.sandbox.quickjs_executor import QuickJsScriptExecutor
from roomstream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def create_http_client(config: AppConfig) -> httpx.AsyncClient:
    """Shared client for all platform requests; non-2xx never raises."""
    return httpx.AsyncClient(
        timeout=config.http_timeout_seconds,
        follow_redirects=config.http_follow_redirects,
        headers={"User-Agent": config.http_user_agent},
    )


def create_signature_cache(
    config: AppConfig, http_client: httpx.AsyncClient
) -> SignatureCache:
    executor = QuickJsScriptExecutor(
        entry_point=SIGN_ENTRY_POINT,
        time_limit_seconds=config.sandbox.time_limit_seconds,
        memory_limit_bytes=config.sandbox.memory_limit_bytes,
    )
    return SignatureCache(
        http_client,
        executor,
        base_url=config.douyu.base_url,
        refetch_on_failure=config.sandbox.refetch_on_failure,
    )


def create_resolve_stream_use_case(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    signature_cache: SignatureCache,
) -> ResolveStreamUseCase:
    negotiator = DouyuStreamNegotiator(
        http_client,
        signature_cache,
        base_url=config.douyu.base_url,
    )
    return ResolveStreamUseCase(
        negotiator=negotiator,
        default_quality=config.douyu.default_quality,
        default_circuit=config.douyu.default_circuit,
        deadline_seconds=config.douyu.deadline_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    state = cast(AppState, app.state)
    config = state.config

    state.http_client = create_http_client(config)
    state.signature_cache = create_signature_cache(config, state.http_client)
    state.resolve_stream_uc = create_resolve_stream_use_case(
        config, state.http_client, state.signature_cache
    )

    log.info(
        "app_startup_complete",
        app_name=config.app_name,
        environment=config.environment,
        base_url=config.douyu.base_url,
    )
    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("app_shutdown")
