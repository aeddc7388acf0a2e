from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, TypeAdapter

from tools.descriptor import (
    ToolDescriptor,
    build_argument_model,
    build_descriptor,
    resolve_type_hints,
)
from tools.errors import DuplicateToolName, RegistryFrozenError

if TYPE_CHECKING:
    from tools.decorators import ToolDeclaration

_LOGGER = logging.getLogger("toolgate")


@dataclass(frozen=True)
class RegisteredTool:
    """Descriptor plus everything needed to invoke the tool's entry point."""

    descriptor: ToolDescriptor
    entry_point: Callable[..., Any]
    input_model: type[BaseModel]
    result_adapter: TypeAdapter[Any]

    @property
    def name(self) -> str:
        return self.descriptor.name


class ToolRegistry:
    """
    Name -> (descriptor, entry point) table.

    Lifecycle:
      - startup: register() every tool, then freeze()
      - serving: lookup()/list()/names() only; no locking is needed because
        nothing writes after freeze()
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, descriptor: ToolDescriptor, entry_point: Callable[..., Any]) -> None:
        """
        Insert a tool.

        Raises:
            RegistryFrozenError: called after freeze().
            DuplicateToolName: the name is already present; the existing entry is kept.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"cannot register {descriptor.name!r}: registry is frozen for serving"
            )
        if descriptor.name in self._tools:
            raise DuplicateToolName(descriptor.name)
        hints = resolve_type_hints(entry_point)
        self._tools[descriptor.name] = RegisteredTool(
            descriptor=descriptor,
            entry_point=entry_point,
            input_model=build_argument_model(descriptor.name, entry_point, hints),
            result_adapter=TypeAdapter(hints.get("return", Any)),
        )
        _LOGGER.debug("tool.register: name=%s", descriptor.name)

    def lookup(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def list(self) -> list[ToolDescriptor]:
        """Snapshot of all descriptors in registration order."""
        return [t.descriptor for t in self._tools.values()]

    def names(self) -> frozenset[str]:
        return frozenset(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_registry(declarations: Iterable[ToolDeclaration], *, freeze: bool = True) -> ToolRegistry:
    """
    Validate, describe and register every declaration into a new registry.

    The first build error propagates; no registry is returned in that case.
    """
    registry = ToolRegistry()
    for decl in declarations:
        descriptor = build_descriptor(decl.func, decl.description, name=decl.name)
        registry.register(descriptor, decl.entry_point)
    if freeze:
        registry.freeze()
    _LOGGER.info("tool.registry.built: count=%d frozen=%s", len(registry), registry.frozen)
    return registry


__all__ = ["RegisteredTool", "ToolRegistry", "build_registry"]
