from __future__ import annotations

import functools
import inspect
import sys
from collections.abc import Callable
from typing import Any

from tools.errors import NotAFreeFunction, UnsupportedToolKind, UnsupportedType

# Enclosing qualname segment of a function defined inside another function
_LOCALS = "<locals>"


def describe_declaration(obj: Any) -> str:
    """Human-readable name for diagnostics (qualified name when available)."""
    if isinstance(obj, (staticmethod, classmethod)):
        obj = obj.__func__
    if isinstance(obj, functools.partial):
        return f"partial({describe_declaration(obj.func)})"
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if isinstance(name, str) and name:
        module = getattr(obj, "__module__", None)
        return f"{module}.{name}" if module else name
    return repr(obj)


def _defined_in_class_body(func: Any) -> bool:
    parts = getattr(func, "__qualname__", "").split(".")
    return len(parts) > 1 and parts[-2] != _LOCALS


def _is_static_member(func: Any) -> bool:
    """True when ``func`` is the function behind a staticmethod of a module-level class."""
    parts = func.__qualname__.split(".")
    if _LOCALS in parts:
        return False
    owner: Any = sys.modules.get(func.__module__)
    for part in parts[:-1]:
        owner = getattr(owner, part, None)
        if not inspect.isclass(owner):
            return False
    member = inspect.getattr_static(owner, parts[-1], None)
    return isinstance(member, staticmethod) and member.__func__ is func


def validate_signature(candidate: Any) -> Callable[..., Any]:
    """
    Check that a candidate declaration is eligible to be exported as a tool.

    Eligible means a plain synchronous function that binds no implicit
    receiver and whose parameters can all be passed by name. A ``staticmethod``
    wrapper is unwrapped; the underlying function is returned.

    Raises:
        NotAFreeFunction: bound/unbound methods (any function defined in a
            class body that is not a staticmethod), classmethods, classes,
            callable instances, partials and builtins.
        UnsupportedToolKind: coroutine, generator and async generator functions.
        UnsupportedType: ``*args``/``**kwargs`` or positional-only parameters.
    """
    label = describe_declaration(candidate)

    unwrapped_static = isinstance(candidate, staticmethod)
    if unwrapped_static:
        candidate = candidate.__func__
    if isinstance(candidate, classmethod):
        raise NotAFreeFunction(label, "classmethod")
    if inspect.ismethod(candidate):
        raise NotAFreeFunction(label, "bound method")
    if inspect.isclass(candidate):
        raise NotAFreeFunction(label, "class")
    if isinstance(candidate, functools.partial):
        raise NotAFreeFunction(label, "partial object")
    if not inspect.isfunction(candidate):
        # Callable instances and builtin methods carry state through __self__/__call__
        raise NotAFreeFunction(label, f"{type(candidate).__name__} object")

    if inspect.iscoroutinefunction(candidate):
        raise UnsupportedToolKind(label, "coroutine")
    if inspect.isasyncgenfunction(candidate):
        raise UnsupportedToolKind(label, "async generator")
    if inspect.isgeneratorfunction(candidate):
        raise UnsupportedToolKind(label, "generator")

    # Methods are recognized by where they were defined, whatever the receiver is called.
    # A class under construction cannot be resolved yet, so its members are rejected too.
    if not unwrapped_static and _defined_in_class_body(candidate) and not _is_static_member(candidate):
        raise NotAFreeFunction(label, "defined in a class body")

    for p in inspect.signature(candidate).parameters.values():
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            raise UnsupportedType(label, f"parameter '*{p.name}'", "variadic parameters")
        if p.kind is inspect.Parameter.VAR_KEYWORD:
            raise UnsupportedType(label, f"parameter '**{p.name}'", "variadic parameters")
        if p.kind is inspect.Parameter.POSITIONAL_ONLY:
            raise UnsupportedType(label, f"parameter '{p.name}'", "positional-only")

    return candidate


__all__ = ["validate_signature", "describe_declaration"]
