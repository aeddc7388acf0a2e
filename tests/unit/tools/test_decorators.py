from __future__ import annotations

import types

import pytest

from toolgate import sample_tools
from tools.decorators import (
    DECLARATION_ATTR,
    ToolDeclaration,
    collect_declarations,
    load_declarations,
    tool,
)
from tools.errors import MissingDescription, NotAFreeFunction, UnsupportedToolKind


@pytest.mark.unit
def test_decorator_returns_function_unchanged():
    def shout(msg: str) -> str:
        return msg.upper()

    marked = tool("Shouts")(shout)
    assert marked is shout
    assert marked("hi") == "HI"
    decl = getattr(shout, DECLARATION_ATTR)
    assert isinstance(decl, ToolDeclaration)
    assert decl.describe().name == "shout"


@pytest.mark.unit
def test_method_in_class_body_fails_at_definition():
    with pytest.raises(NotAFreeFunction):

        class Service:  # noqa: F841
            @tool("Never exported")
            def bad_tool(self) -> str:
                return "x"


@pytest.mark.unit
def test_invalid_declarations_fail_at_decoration():
    with pytest.raises(MissingDescription):

        @tool("")
        def nameless(msg: str) -> str:
            return msg

    with pytest.raises(UnsupportedToolKind):

        @tool("Async")
        async def later(msg: str) -> str:
            return msg


@pytest.mark.unit
def test_collect_declarations_in_definition_order():
    names = [d.describe().name for d in collect_declarations(sample_tools)]
    assert names == ["echo", "add", "divide", "word_stats", "clock.now"]


@pytest.mark.unit
def test_collect_skips_reexported_tools():
    mod = types.ModuleType("reexporter")
    mod.echo = sample_tools.echo
    assert collect_declarations(mod) == []


@pytest.mark.unit
def test_load_declarations_imports_by_path():
    decls = load_declarations(["toolgate.sample_tools"])
    assert [d.func for d in decls][:2] == [sample_tools.echo, sample_tools.add]
    with pytest.raises(ImportError):
        load_declarations(["toolgate.no_such_module"])
