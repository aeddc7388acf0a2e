from __future__ import annotations


class ToolBuildError(Exception):
    """
    Base class for authoring mistakes detected while building the tool set.

    These are raised while tool modules are imported or while the registry is
    assembled, never while serving calls.
    """

    def __init__(self, declaration: str, message: str) -> None:
        super().__init__(f"{declaration}: {message}")
        self.declaration = declaration


class NotAFreeFunction(ToolBuildError):
    """Declaration binds an implicit receiver (method, callable instance, class...)."""

    def __init__(self, declaration: str, detail: str = "") -> None:
        msg = "tools must be free functions without a self/cls receiver"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(declaration, msg)


class UnsupportedToolKind(ToolBuildError):
    """Coroutine or generator functions cannot be dispatched synchronously."""

    def __init__(self, declaration: str, kind: str) -> None:
        super().__init__(declaration, f"{kind} functions are not supported as tools")
        self.kind = kind


class MissingDescription(ToolBuildError):
    def __init__(self, declaration: str) -> None:
        super().__init__(declaration, "a non-empty description is required")


class UnsupportedType(ToolBuildError):
    """A parameter or result type has no representation in the call encoding."""

    def __init__(self, declaration: str, position: str, detail: str = "") -> None:
        msg = f"unsupported type for {position}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(declaration, msg)
        self.position = position


class InvalidToolName(ToolBuildError):
    def __init__(self, declaration: str, name: str) -> None:
        super().__init__(declaration, f"invalid tool name {name!r}")
        self.name = name


class DuplicateToolName(ToolBuildError):
    def __init__(self, name: str) -> None:
        super().__init__(name, "a tool with this name is already registered")
        self.name = name


class RegistryFrozenError(RuntimeError):
    """Registration attempted after the registry was published for lookups."""


class ToolError(Exception):
    """
    Raised by tool code to report an expected failure.

    The message is returned to the caller as the tool's error value.
    """


class AccessDenied(Exception):
    """
    Call refused by the authorization gate.

    The message never says why; the reason only goes to the audit trail.
    """

    def __init__(self) -> None:
        super().__init__("Access denied")


class InvalidArguments(ValueError):
    """Encoded arguments could not be decoded into the tool's parameters."""


__all__ = [
    "ToolBuildError",
    "NotAFreeFunction",
    "UnsupportedToolKind",
    "MissingDescription",
    "UnsupportedType",
    "InvalidToolName",
    "DuplicateToolName",
    "RegistryFrozenError",
    "ToolError",
    "AccessDenied",
    "InvalidArguments",
]
