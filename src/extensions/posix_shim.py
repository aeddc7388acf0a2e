from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, field_validator, model_validator

from extensions.bootstrap import (
    BootstrapContext,
    ExtensionConfig,
    ExtensionInitError,
    InitErrorKind,
)

if TYPE_CHECKING:
    from config.settings import AppSettings

_LOGGER = logging.getLogger("toolgate")

SEED_LENGTH = 32


def derive_seed(service_id: str) -> bytes:
    """
    Deterministic 32-byte seed from a service id.

    The id's bytes fill the head; every later byte is an earlier byte plus its
    index, wrapping at 256.
    """
    raw = service_id.encode("utf-8")
    if not raw:
        raise ValueError("service id must not be empty")
    seed = bytearray(SEED_LENGTH)
    head = raw[:SEED_LENGTH]
    seed[: len(head)] = head
    for i in range(len(head), SEED_LENGTH):
        seed[i] = (seed[i % len(head)] + i) & 0xFF
    return bytes(seed)


class PosixShimConfig(ExtensionConfig):
    """Configuration for the POSIX execution shim."""

    extension_name: ClassVar[str] = "posix_shim"

    seed: bytes | None = Field(default=None, description="Exactly 32 bytes; derived when absent")
    env_vars: dict[str, str] = Field(default_factory=dict)
    memory_range: tuple[int, int] = (200, 210)
    required_env_vars: tuple[str, ...] = ()

    @field_validator("seed")
    @classmethod
    def seed_length(cls, v: bytes | None) -> bytes | None:
        if v is not None and len(v) != SEED_LENGTH:
            raise ValueError(f"seed must be {SEED_LENGTH} bytes, got {len(v)}")
        return v

    @model_validator(mode="after")
    def memory_range_bounds(self) -> PosixShimConfig:
        start, end = self.memory_range
        if not (0 <= start < end <= 255):
            raise ValueError(f"memory_range must satisfy 0 <= start < end <= 255, got {start}..{end}")
        return self


@dataclass(frozen=True)
class PosixShim:
    """Ready state of the shim: what tools running under it can rely on."""

    seed: bytes
    env: Mapping[str, str] = field(default_factory=dict)
    memory_ids: range = range(200, 210)

    def getenv(self, key: str, default: str | None = None) -> str | None:
        return self.env.get(key, default)


class PosixShimExtension:
    name: ClassVar[str] = "posix_shim"
    requires: ClassVar[tuple[str, ...]] = ()

    def apply(self, config: Any, context: BootstrapContext) -> PosixShim:
        if not isinstance(config, PosixShimConfig):
            raise ExtensionInitError(
                InitErrorKind.INVALID_CONFIGURATION,
                self.name,
                f"expected PosixShimConfig, got {type(config).__name__}",
            )
        missing = [k for k in config.required_env_vars if k not in config.env_vars]
        if missing:
            raise ExtensionInitError(
                InitErrorKind.RESOURCE_UNAVAILABLE,
                self.name,
                f"required environment variables not set: {', '.join(missing)}",
            )
        if config.seed is not None:
            seed = config.seed
        else:
            try:
                seed = derive_seed(context.service_id)
            except ValueError as e:
                raise ExtensionInitError(InitErrorKind.INITIALIZATION_FAILED, self.name, str(e)) from e

        start, end = config.memory_range
        _LOGGER.info(
            "posix_shim.ready: env_vars=%d memory_range=%d..%d", len(config.env_vars), start, end
        )
        return PosixShim(
            seed=seed,
            env=MappingProxyType(dict(config.env_vars)),
            memory_ids=range(start, end),
        )


def extension_configs_from_settings(settings: AppSettings) -> list[ExtensionConfig]:
    """Translate ``settings.extensions`` into configs, keeping the listed order."""
    configs: list[ExtensionConfig] = []
    for name in settings.extensions:
        if name == PosixShimConfig.extension_name:
            try:
                configs.append(
                    PosixShimConfig(
                        env_vars=dict(settings.posix_shim_env),
                        memory_range=tuple(settings.posix_shim_memory_range),
                        required_env_vars=tuple(settings.posix_shim_required_env),
                    )
                )
            except ValueError as e:
                raise ExtensionInitError(InitErrorKind.INVALID_CONFIGURATION, name, str(e)) from e
        else:
            raise ExtensionInitError(InitErrorKind.DEPENDENCY_MISSING, name, "no such extension")
    return configs


__all__ = [
    "PosixShim",
    "PosixShimConfig",
    "PosixShimExtension",
    "derive_seed",
    "extension_configs_from_settings",
]
