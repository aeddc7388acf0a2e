"""
Tool registration package.

Exports:
- tool / ToolDeclaration: mark free functions as exported tools
- validate_signature: free-function eligibility check
- build_descriptor / ToolDescriptor / TypeTag: immutable tool metadata
- ToolRegistry / build_registry: write-once name -> tool table
- ToolDispatcher: authorization-gated call path used by the transport
"""

from __future__ import annotations

from .decorators import ToolDeclaration, collect_declarations, load_declarations, tool
from .descriptor import ParameterSpec, ToolDescriptor, TypeTag, build_descriptor
from .dispatcher import ResolvedCall, ToolDispatcher
from .errors import (
    AccessDenied,
    DuplicateToolName,
    InvalidArguments,
    MissingDescription,
    NotAFreeFunction,
    RegistryFrozenError,
    ToolBuildError,
    ToolError,
    UnsupportedType,
)
from .registry import RegisteredTool, ToolRegistry, build_registry
from .signature import validate_signature

__all__ = [
    "tool",
    "ToolDeclaration",
    "collect_declarations",
    "load_declarations",
    "validate_signature",
    "build_descriptor",
    "ToolDescriptor",
    "ParameterSpec",
    "TypeTag",
    "ToolRegistry",
    "RegisteredTool",
    "build_registry",
    "ToolDispatcher",
    "ResolvedCall",
    "ToolBuildError",
    "NotAFreeFunction",
    "MissingDescription",
    "UnsupportedType",
    "DuplicateToolName",
    "RegistryFrozenError",
    "ToolError",
    "AccessDenied",
    "InvalidArguments",
]
