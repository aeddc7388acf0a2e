from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Centralized service configuration.

    Environment variables (prefix ``APP_``) override defaults. Only startup code
    (api.main, toolgate.startup, the CLI) reads settings; the tool, policy and
    gate modules receive concrete values as arguments.
    """

    # General
    environment: Literal["dev", "prod"] = Field(default="dev", description="Runtime environment")
    service_id: str = Field(
        default="toolgate",
        description="Stable service identifier; seeds extensions that need determinism",
    )

    # Tools and policy
    tool_modules: list[str] = Field(
        default_factory=lambda: ["toolgate.sample_tools"],
        description="Dotted module paths scanned for @tool declarations, in order",
    )
    policy_path: Path | None = Field(
        default=None,
        description="YAML authorization policy; required in prod",
    )
    discovery_filtered: bool = Field(
        default=False,
        description="Hide tools the caller may not invoke from GET /tools",
    )

    # Extensions, applied in the listed order
    extensions: list[str] = Field(
        default_factory=list, description="Extension names to bootstrap (e.g. posix_shim)"
    )
    posix_shim_env: dict[str, str] = Field(
        default_factory=dict, description="Environment exposed to the POSIX shim"
    )
    posix_shim_memory_range: tuple[int, int] = Field(
        default=(200, 210), description="Memory id range reserved for the POSIX shim"
    )
    posix_shim_required_env: list[str] = Field(
        default_factory=list, description="Variables that must be present in posix_shim_env"
    )

    # Audit storage
    database_url: str = Field(
        default="sqlite:///./data/toolgate.db",
        description="SQLAlchemy-style DB URL for the audit log",
    )
    audit_log_enabled: bool = Field(default=True, description="Persist authorization decisions")

    # Observability
    logging_config_path: Path | None = Field(
        default=Path("src/config/logging.yaml"),
        description="Path to logging configuration YAML",
    )
    enable_tracing: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    enable_metrics: bool = Field(default=True, description="Expose Prometheus metrics")

    # Caller identity
    jwt_secret: str | None = Field(
        default=None,
        description="JWT HMAC secret for verifying Bearer tokens (env: APP_JWT_SECRET)",
    )
    jwt_algorithms: list[str] = Field(
        default_factory=lambda: ["HS256"],
        description="Accepted JWT algorithms (e.g., HS256)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("tool_modules", "extensions")
    @classmethod
    def strip_names(cls, v: list[str]) -> list[str]:
        return [item.strip() for item in v if item and item.strip()]

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v:
            raise ValueError("database_url must not be empty")
        return v

    @field_validator("jwt_secret")
    @classmethod
    def blank_secret_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        trimmed = v.strip()
        return trimmed or None

    @model_validator(mode="after")
    def prod_requires_policy(self) -> AppSettings:
        if self.environment == "prod" and self.policy_path is None:
            raise ValueError("policy_path is required when environment is 'prod'")
        return self

    @property
    def is_prod(self) -> bool:
        return self.environment == "prod"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """
    Cached settings accessor for application modules.
    """
    return AppSettings()
