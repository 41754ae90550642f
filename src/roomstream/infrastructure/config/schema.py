"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


class DouyuConfig(BaseModel):
    """Platform endpoints and resolution defaults (YAML section: douyu.*)."""

    base_url: str = Field(
        default="https://www.douyu.com",
        description="Origin for the homeH5Enc and getH5Play endpoints.",
    )
    default_quality: str = Field(
        default="超清",
        description="Quality requested when the caller does not name one.",
    )
    default_circuit: str = Field(
        default="ws-h5",
        description="CDN circuit requested when the caller does not name one.",
    )
    deadline_seconds: float = Field(
        default=30.0,
        description="Deadline for one whole resolution (all round trips).",
    )

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("douyu.base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("deadline_seconds")
    @classmethod
    def _validate_deadline(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("douyu.deadline_seconds must be > 0")
        return v


class SandboxConfig(BaseModel):
    """Limits for executing vendor signing scripts (YAML section: sandbox.*)."""

    time_limit_seconds: float = Field(
        default=1.0,
        description="CPU time limit per script evaluation or signing call.",
    )
    memory_limit_bytes: int = Field(
        default=32 * 1024 * 1024,
        description="Heap limit of each sandbox context.",
    )
    refetch_on_failure: bool = Field(
        default=False,
        description="Re-download the vendor script once if it fails to compile.",
    )

    @field_validator("time_limit_seconds")
    @classmethod
    def _validate_time_limit(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sandbox.time_limit_seconds must be > 0")
        return v

    @field_validator("memory_limit_bytes")
    @classmethod
    def _validate_memory_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("sandbox.memory_limit_bytes must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/douyu/sandbox/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="roomstream", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for platform requests.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    douyu: DouyuConfig = Field(default_factory=DouyuConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "douyu": self.douyu.model_dump(),
            "sandbox": self.sandbox.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read ROOMSTREAM_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - ROOMSTREAM_HTTP_TIMEOUT_SECONDS
    - ROOMSTREAM_DOUYU_BASE_URL
    - ROOMSTREAM_DEFAULT_QUALITY
    - ROOMSTREAM_SANDBOX_TIME_LIMIT_SECONDS
    - ROOMSTREAM_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="ROOMSTREAM_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    douyu_base_url: Optional[str] = None
    default_quality: Optional[str] = None
    default_circuit: Optional[str] = None
    deadline_seconds: Optional[float] = None

    sandbox_time_limit_seconds: Optional[float] = None
    sandbox_memory_limit_bytes: Optional[int] = None
    sandbox_refetch_on_failure: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
