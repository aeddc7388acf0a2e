from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

_LOGGER = logging.getLogger("toolgate")


class InitErrorKind(str, Enum):
    INITIALIZATION_FAILED = "initialization_failed"
    DEPENDENCY_MISSING = "dependency_missing"
    INVALID_CONFIGURATION = "invalid_configuration"
    RESOURCE_UNAVAILABLE = "resource_unavailable"


class ExtensionInitError(Exception):
    """An extension could not be brought up. Fatal to startup."""

    def __init__(self, kind: InitErrorKind, extension: str, message: str) -> None:
        super().__init__(f"extension {extension!r} {kind.value}: {message}")
        self.kind = kind
        self.extension = extension


class ExtensionConfig(BaseModel):
    """
    Named, immutable configuration for one extension.

    Subclasses set ``extension_name`` to the extension that consumes them.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    extension_name: ClassVar[str] = ""


@runtime_checkable
class Extension(Protocol):
    name: str
    requires: tuple[str, ...]

    def apply(self, config: Any, context: BootstrapContext) -> Any:
        """Bring the subsystem up and return its ready state, or raise."""
        ...


@dataclass
class BootstrapContext:
    """What an extension may see while applying: the service id and earlier states."""

    service_id: str
    ready: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BootstrapResult:
    """Ready subsystem states by extension name, in application order."""

    states: Mapping[str, Any]

    @property
    def applied(self) -> tuple[str, ...]:
        return tuple(self.states)

    def get(self, name: str) -> Any:
        return self.states.get(name)


def bootstrap_extensions(
    configs: Sequence[ExtensionConfig],
    *,
    extensions: Mapping[str, Extension] | Iterable[Extension] | None = None,
    service_id: str = "toolgate",
) -> BootstrapResult:
    """
    Apply extension configs strictly in the supplied order.

    Later extensions may rely on earlier ones; a declared requirement that was
    not applied earlier is an error, there is no reordering. The first failure
    stops the bootstrap: remaining configs are not applied and nothing already
    applied is rolled back.

    Raises:
        ExtensionInitError: unknown extension, unmet requirement, duplicate, or apply failure.
    """
    table = _extension_table(extensions)
    ctx = BootstrapContext(service_id=service_id)

    for cfg in configs:
        name = type(cfg).extension_name
        ext = table.get(name)
        if ext is None:
            raise ExtensionInitError(
                InitErrorKind.DEPENDENCY_MISSING, name or type(cfg).__name__, "no such extension"
            )
        if name in ctx.ready:
            raise ExtensionInitError(
                InitErrorKind.INVALID_CONFIGURATION, name, "configured more than once"
            )
        for dep in ext.requires:
            if dep not in ctx.ready:
                raise ExtensionInitError(
                    InitErrorKind.DEPENDENCY_MISSING, name, f"requires {dep!r} to be applied first"
                )
        try:
            state = ext.apply(cfg, ctx)
        except ExtensionInitError:
            _LOGGER.error("extension.apply.failed: name=%s", name)
            raise
        except Exception as e:
            _LOGGER.error("extension.apply.failed: name=%s error=%s", name, e)
            raise ExtensionInitError(InitErrorKind.INITIALIZATION_FAILED, name, str(e)) from e
        ctx.ready[name] = state
        _LOGGER.info("extension.applied: name=%s", name)

    return BootstrapResult(states=MappingProxyType(dict(ctx.ready)))


def _extension_table(
    extensions: Mapping[str, Extension] | Iterable[Extension] | None,
) -> dict[str, Extension]:
    if extensions is None:
        from extensions.posix_shim import PosixShimExtension

        return {PosixShimExtension.name: PosixShimExtension()}
    if isinstance(extensions, Mapping):
        return dict(extensions)
    return {ext.name: ext for ext in extensions}


__all__ = [
    "InitErrorKind",
    "ExtensionInitError",
    "ExtensionConfig",
    "Extension",
    "BootstrapContext",
    "BootstrapResult",
    "bootstrap_extensions",
]
