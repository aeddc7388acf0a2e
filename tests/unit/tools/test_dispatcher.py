from __future__ import annotations

import pytest

from security.gate import AuthorizationGate
from security.identity import CallerIdentity
from security.policy import StaticAuthPolicy
from tools.decorators import ToolDeclaration
from tools.dispatcher import ToolDispatcher, decode_arguments
from tools.errors import AccessDenied, InvalidArguments
from tools.registry import ToolRegistry, build_registry

ALICE = CallerIdentity.of("A")
BOB = CallerIdentity.of("B")


@pytest.fixture()
def dispatcher(sample_registry: ToolRegistry, gate: AuthorizationGate) -> ToolDispatcher:
    return ToolDispatcher(sample_registry, gate)


@pytest.mark.unit
def test_decode_arguments_accepts_mapping_text_and_bytes():
    assert decode_arguments({"a": 1}) == {"a": 1}
    assert decode_arguments('{"a": 1}') == {"a": 1}
    assert decode_arguments(b'{"a": 1}') == {"a": 1}
    assert decode_arguments(None) == {}
    assert decode_arguments("  ") == {}
    for bad in ("[1, 2]", "{not json", 42, b"\xff\xfe"):
        with pytest.raises(InvalidArguments):
            decode_arguments(bad)


@pytest.mark.unit
def test_allowed_call_returns_encoded_result(dispatcher: ToolDispatcher):
    assert dispatcher.dispatch(ALICE, "echo", {"msg": "hi"}) == {"result": "hi"}
    assert dispatcher.dispatch(ALICE, "add", '{"a": 2, "b": 3}') == {"result": 5}


@pytest.mark.unit
def test_model_results_are_json_encoded(dispatcher: ToolDispatcher):
    caller = CallerIdentity.of("writer-1", roles=["writer"])
    out = dispatcher.dispatch(caller, "word_stats", {"text": "a bb ccc"})
    assert out == {"result": {"words": 3, "characters": 8, "longest": "ccc"}}

    # top limits every figure, not just the word count
    out = dispatcher.dispatch(caller, "word_stats", {"text": "a bb  ccc", "top": 2})
    assert out == {"result": {"words": 2, "characters": 4, "longest": "bb"}}


@pytest.mark.unit
def test_denials_are_indistinguishable(dispatcher: ToolDispatcher):
    insufficient = dispatcher.dispatch(BOB, "add", {"a": 1, "b": 2})
    no_policy = dispatcher.dispatch(ALICE, "clock.now", {})
    unknown = dispatcher.dispatch(ALICE, "unknown_tool", {})
    expected = {"error": {"category": "access_denied", "message": "Access denied"}}
    assert insufficient == expected
    assert no_policy == expected
    assert unknown == expected


@pytest.mark.unit
def test_denied_call_never_runs_tool_code():
    calls: list[str] = []

    def record(msg: str) -> str:
        calls.append(msg)
        return msg

    registry = build_registry([ToolDeclaration(record, "Records its input")])
    policy = StaticAuthPolicy(rules={"record": "use:record"}, grants={"A": ["use:record"]})
    dispatcher = ToolDispatcher(registry, AuthorizationGate(policy, registry.names()))

    assert dispatcher.dispatch(BOB, "record", {"msg": "x"})["error"]["category"] == "access_denied"
    with pytest.raises(AccessDenied):
        dispatcher.resolve(BOB, "record", {"msg": "x"})
    assert calls == []

    assert dispatcher.dispatch(ALICE, "record", {"msg": "y"}) == {"result": "y"}
    assert calls == ["y"]


@pytest.mark.unit
def test_authorization_happens_before_argument_decoding(dispatcher: ToolDispatcher):
    out = dispatcher.dispatch(BOB, "add", "{not json")
    assert out["error"]["category"] == "access_denied"


@pytest.mark.unit
def test_invalid_arguments_are_validation_errors(dispatcher: ToolDispatcher):
    for args in ({"a": "x", "b": 1}, {"a": 1}, {"a": 1, "b": 2, "c": 3}, "[1]"):
        out = dispatcher.dispatch(ALICE, "add", args)
        assert out["error"]["category"] == "validation_error", args
        assert out["error"]["details"]["tool_name"] == "add"


@pytest.mark.unit
def test_tool_error_message_is_returned(dispatcher: ToolDispatcher):
    out = dispatcher.dispatch(ALICE, "divide", {"a": 1, "b": 0})
    assert out == {
        "error": {
            "category": "tool_error",
            "message": "division by zero",
            "details": {"tool_name": "divide"},
        }
    }


@pytest.mark.unit
def test_non_finite_float_arguments_are_validation_errors(dispatcher: ToolDispatcher):
    for value in ("nan", "inf", "-Infinity"):
        out = dispatcher.dispatch(ALICE, "divide", {"a": value, "b": 1})
        assert out["error"]["category"] == "validation_error", value


def _single_tool_dispatcher(func, description: str) -> ToolDispatcher:
    registry = build_registry([ToolDeclaration(func, description)])
    name = func.__name__
    policy = StaticAuthPolicy(rules={name: "use:it"}, grants={"A": ["use:it"]})
    return ToolDispatcher(registry, AuthorizationGate(policy, registry.names()))


@pytest.mark.unit
def test_unencodable_results_are_tool_errors():
    def blob() -> bytes:
        return b"\xff\xfe"

    def overflow() -> float:
        return float("inf")

    for func in (blob, overflow):
        out = _single_tool_dispatcher(func, "Returns something JSON cannot carry").dispatch(ALICE, func.__name__)
        assert out == {
            "error": {
                "category": "tool_error",
                "message": "Tool returned an invalid result",
                "details": {"tool_name": func.__name__},
            }
        }


@pytest.mark.unit
def test_anonymous_caller_uses_anonymous_grants(dispatcher: ToolDispatcher):
    assert dispatcher.dispatch(None, "echo", {"msg": "x"}) == {"result": "x"}
    assert dispatcher.dispatch(CallerIdentity.anonymous(), "add", {"a": 1, "b": 1})["error"][
        "category"
    ] == "access_denied"
