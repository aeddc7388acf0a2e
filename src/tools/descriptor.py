from __future__ import annotations

import inspect
import json
import re
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, PydanticUserError, TypeAdapter, create_model

from tools.errors import InvalidToolName, MissingDescription, UnsupportedType
from tools.signature import describe_declaration, validate_signature

# Tool names travel in URLs and metric labels; keep them short and plain
_TOOL_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]{0,63}$")


class _Unrepresentable(Exception):
    pass


def _canonical_json(schema: dict[str, Any]) -> str:
    return json.dumps(schema, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class TypeTag:
    """
    Type of a parameter or result in the call encoding.

    ``name`` is a compact tag (``string``, ``array<integer>``, ``optional<string>``,
    ``object:Point``...). ``schema`` is the canonical JSON Schema text.
    """

    name: str
    schema: str

    def json_schema(self) -> dict[str, Any]:
        return json.loads(self.schema)

    def __str__(self) -> str:
        return self.name


STRING_TAG = TypeTag(name="string", schema=_canonical_json({"type": "string"}))


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: TypeTag
    required: bool = True


@dataclass(frozen=True)
class ToolDescriptor:
    """
    Immutable description of one tool: name, purpose and call shape.

    ``error`` is the type of the value reported when the tool raises ``ToolError``.
    """

    name: str
    description: str
    parameters: tuple[ParameterSpec, ...]
    result: TypeTag
    input_schema: str
    error: TypeTag = STRING_TAG

    def input_json_schema(self) -> dict[str, Any]:
        return json.loads(self.input_schema)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready shape used by discovery listings and the build CLI."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {"name": p.name, "type": p.type.name, "required": p.required}
                for p in self.parameters
            ],
            "input_schema": self.input_json_schema(),
            "result": {"type": self.result.name, "schema": self.result.json_schema()},
            "error": {"type": self.error.name},
        }


def _tag_name(schema: dict[str, Any], defs: dict[str, Any]) -> str:
    if not schema:
        # Any / object: nothing a remote caller could rely on
        raise _Unrepresentable("type has no JSON representation (Any)")
    ref = schema.get("$ref")
    if isinstance(ref, str):
        target = defs.get(ref.rsplit("/", 1)[-1])
        if target is None:
            raise _Unrepresentable(f"unresolved reference {ref}")
        return _tag_name(target, defs)
    if "enum" in schema or "const" in schema:
        return "enum"
    variants = schema.get("anyOf") or schema.get("oneOf")
    if variants:
        non_null = [v for v in variants if v.get("type") != "null"]
        if len(non_null) == 1 and len(non_null) < len(variants):
            return f"optional<{_tag_name(non_null[0], defs)}>"
        return "union<" + ",".join(_tag_name(v, defs) for v in variants) + ">"
    kind = schema.get("type")
    if kind == "array":
        items = schema.get("items")
        if isinstance(items, dict):
            return f"array<{_tag_name(items, defs)}>"
        return "array"
    if kind == "object":
        if "properties" in schema:
            title = schema.get("title")
            return f"object:{title}" if title else "object"
        extra = schema.get("additionalProperties")
        if isinstance(extra, dict):
            return f"map<{_tag_name(extra, defs)}>"
        return "object"
    if isinstance(kind, str):
        return kind
    raise _Unrepresentable(f"unrecognized schema {_canonical_json(schema)}")


def type_tag_for(annotation: Any, declaration: str, position: str) -> TypeTag:
    """
    Map a Python annotation to a ``TypeTag``.

    Raises:
        UnsupportedType: the annotation cannot be expressed as JSON Schema.
    """
    try:
        schema = TypeAdapter(annotation).json_schema()
        name = _tag_name(schema, schema.get("$defs", {}))
    except (PydanticUserError, _Unrepresentable, TypeError, ValueError) as e:
        raise UnsupportedType(declaration, position, str(e).splitlines()[0]) from e
    return TypeTag(name=name, schema=_canonical_json(schema))


def resolve_type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func, include_extras=True)
    except Exception as e:
        # Forward references that do not resolve in the function's module
        raise UnsupportedType(describe_declaration(func), "annotations", str(e)) from e


def _model_name(tool_name: str) -> str:
    parts = [p for p in re.split(r"[^A-Za-z0-9]+", tool_name) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts) + "Arguments"


def build_argument_model(
    tool_name: str, func: Callable[..., Any], hints: dict[str, Any] | None = None
) -> type[BaseModel]:
    """Strict pydantic model used to decode the arguments of one tool call."""
    hints = hints if hints is not None else resolve_type_hints(func)
    fields: dict[str, Any] = {}
    for p in inspect.signature(func).parameters.values():
        default = ... if p.default is inspect.Parameter.empty else p.default
        fields[p.name] = (hints.get(p.name, Any), default)
    return create_model(  # type: ignore[call-overload]
        _model_name(tool_name),
        # NaN/Infinity have no JSON encoding
        __config__=ConfigDict(extra="forbid", allow_inf_nan=False, protected_namespaces=()),
        **fields,
    )


def build_descriptor(
    func: Any, description: str | None, *, name: str | None = None
) -> ToolDescriptor:
    """
    Validate a declaration and produce its ``ToolDescriptor``.

    Does not register anything. The same input always yields an equal descriptor.

    Raises:
        NotAFreeFunction, UnsupportedToolKind: see ``validate_signature``.
        InvalidToolName: the tool name is not a plain identifier.
        MissingDescription: description is missing or blank.
        UnsupportedType: a parameter or the result has no JSON representation.
    """
    fn = validate_signature(func)
    label = describe_declaration(fn)

    tool_name = name if name is not None else fn.__name__
    if not isinstance(tool_name, str) or not _TOOL_NAME_RE.match(tool_name):
        raise InvalidToolName(label, str(tool_name))
    if not isinstance(description, str) or not description.strip():
        raise MissingDescription(label)

    hints = resolve_type_hints(fn)
    parameters: list[ParameterSpec] = []
    for p in inspect.signature(fn).parameters.values():
        position = f"parameter '{p.name}'"
        if p.name.startswith("_"):
            raise UnsupportedType(label, position, "parameter names may not start with '_'")
        if p.name not in hints:
            raise UnsupportedType(label, position, "missing annotation")
        parameters.append(
            ParameterSpec(
                name=p.name,
                type=type_tag_for(hints[p.name], label, position),
                required=p.default is inspect.Parameter.empty,
            )
        )
    if "return" not in hints:
        raise UnsupportedType(label, "result", "missing annotation")
    result = type_tag_for(hints["return"], label, "result")

    try:
        input_schema = build_argument_model(tool_name, fn, hints).model_json_schema()
    except (PydanticUserError, TypeError, ValueError) as e:
        raise UnsupportedType(label, "parameters", str(e).splitlines()[0]) from e

    return ToolDescriptor(
        name=tool_name,
        description=description.strip(),
        parameters=tuple(parameters),
        result=result,
        input_schema=_canonical_json(input_schema),
    )


__all__ = [
    "TypeTag",
    "ParameterSpec",
    "ToolDescriptor",
    "STRING_TAG",
    "type_tag_for",
    "resolve_type_hints",
    "build_argument_model",
    "build_descriptor",
]
