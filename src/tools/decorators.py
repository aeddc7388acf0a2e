from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import ModuleType
from typing import Any, TypeVar

from tools.descriptor import ToolDescriptor, build_descriptor
from tools.signature import validate_signature

F = TypeVar("F", bound=Callable[..., Any])

# Attribute set on functions marked with @tool
DECLARATION_ATTR = "__tool_declaration__"


@dataclass(frozen=True)
class ToolDeclaration:
    """A (callable, description) pair waiting for the startup build pass."""

    func: Any
    description: str
    name: str | None = None

    @property
    def entry_point(self) -> Callable[..., Any]:
        return validate_signature(self.func)

    def describe(self) -> ToolDescriptor:
        return build_descriptor(self.func, self.description, name=self.name)


def tool(description: str, *, name: str | None = None) -> Callable[[F], F]:
    """
    Mark a free function as an exported tool.

    The signature is validated and the descriptor built when the decorator runs,
    so a method decorated inside a class body fails as soon as its module is
    imported. The function itself is returned unchanged.

    Usage:
        @tool("Echoes input")
        def echo(msg: str) -> str:
            return msg
    """

    def _mark(func: F) -> F:
        decl = ToolDeclaration(func=func, description=description, name=name)
        decl.describe()
        setattr(func, DECLARATION_ATTR, decl)
        return func

    return _mark


def collect_declarations(module: ModuleType) -> list[ToolDeclaration]:
    """Declarations of one module in definition order (re-exports are skipped)."""
    found: list[ToolDeclaration] = []
    for value in vars(module).values():
        decl = getattr(value, DECLARATION_ATTR, None)
        if isinstance(decl, ToolDeclaration) and getattr(value, "__module__", None) == module.__name__:
            found.append(decl)
    return found


def load_declarations(module_names: Iterable[str]) -> list[ToolDeclaration]:
    """Import modules by dotted path and gather their declarations in order."""
    out: list[ToolDeclaration] = []
    for mod_name in module_names:
        out.extend(collect_declarations(importlib.import_module(mod_name)))
    return out


__all__ = [
    "ToolDeclaration",
    "tool",
    "collect_declarations",
    "load_declarations",
    "DECLARATION_ATTR",
]
