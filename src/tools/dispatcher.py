from __future__ import annotations

import contextlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from observability.metrics import TOOL_CALL_COUNT, TOOL_LATENCY_SECONDS
from observability.tracing import tracer
from security.gate import AuthorizationGate
from security.identity import CallerIdentity
from tools.errors import AccessDenied, InvalidArguments, ToolError
from tools.registry import RegisteredTool, ToolRegistry

_LOGGER = logging.getLogger("toolgate")


@dataclass(frozen=True)
class ResolvedCall:
    """An authorized call: the entry point plus decoded keyword arguments."""

    tool: RegisteredTool
    arguments: dict[str, Any]

    def invoke(self) -> Any:
        return self.tool.entry_point(**self.arguments)


def decode_arguments(encoded: Any) -> dict[str, Any]:
    """Accept a mapping or JSON object text; anything else is invalid."""
    if encoded is None:
        return {}
    if isinstance(encoded, (bytes, bytearray)):
        try:
            encoded = encoded.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidArguments("arguments are not UTF-8 text") from e
    if isinstance(encoded, str):
        try:
            encoded = json.loads(encoded) if encoded.strip() else {}
        except json.JSONDecodeError as e:
            raise InvalidArguments(f"arguments are not valid JSON: {e}") from e
    if not isinstance(encoded, dict):
        raise InvalidArguments("arguments must be a JSON object")
    return encoded


def _error(category: str, message: str, **details: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"category": category, "message": message}
    if details:
        payload["details"] = details
    return {"error": payload}


class ToolDispatcher:
    """
    Call path between the transport and the registry:

      1) authorization gate (a denial stops here; tool code never runs)
      2) registry lookup
      3) argument decoding against the tool's strict argument model
      4) invocation, result validation and JSON encoding
      5) observability: logging, metrics, tracing
    """

    def __init__(
        self,
        registry: ToolRegistry,
        gate: AuthorizationGate,
        *,
        tracing_enabled: bool = False,
    ) -> None:
        self._registry = registry
        self._gate = gate
        self._tracing_enabled = tracing_enabled

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def gate(self) -> AuthorizationGate:
        return self._gate

    def resolve(
        self, identity: CallerIdentity | None, tool_name: str, encoded_arguments: Any = None
    ) -> ResolvedCall:
        """
        Authorize, then decode arguments.

        Raises:
            AccessDenied: any denial; the message carries no reason.
            InvalidArguments: arguments do not match the tool's parameters.
        """
        decision = self._gate.authorize(identity, tool_name)
        if not decision.allowed:
            raise AccessDenied()
        tool = self._registry.lookup(tool_name)
        if tool is None:
            # Policy allowed a name the registry does not know; same answer as a denial
            raise AccessDenied()
        args = decode_arguments(encoded_arguments)
        try:
            validated = tool.input_model.model_validate(args)
        except ValidationError as e:
            raise InvalidArguments(str(e)) from e
        arguments = {name: getattr(validated, name) for name in tool.input_model.model_fields}
        return ResolvedCall(tool=tool, arguments=arguments)

    def dispatch(
        self, identity: CallerIdentity | None, tool_name: str, encoded_arguments: Any = None
    ) -> dict[str, Any]:
        """
        Resolve and run one call. Never raises for caller-side problems.

        Returns ``{"result": ...}`` or ``{"error": {"category", "message"}}`` where
        category is one of access_denied, validation_error, tool_error.
        """
        try:
            call = self.resolve(identity, tool_name, encoded_arguments)
        except AccessDenied as e:
            return _error("access_denied", str(e))
        except InvalidArguments as e:
            return _error("validation_error", "Invalid input payload", tool_name=tool_name, hint=str(e))

        span_cm = (
            tracer().start_as_current_span("tool.call")
            if self._tracing_enabled
            else contextlib.nullcontext()
        )
        TOOL_CALL_COUNT.labels(tool_name=tool_name).inc()
        start = time.monotonic()
        try:
            with span_cm as span:
                if span is not None:
                    span.set_attribute("tool_name", tool_name)
                value = call.invoke()
        except ToolError as e:
            _LOGGER.info("tool.execute.tool_error: name=%s error=%s", tool_name, e)
            return _error("tool_error", str(e), tool_name=tool_name)
        except Exception as e:
            _LOGGER.exception("tool.execute.error: name=%s error=%s", tool_name, e)
            return _error("tool_error", "Tool execution failed", tool_name=tool_name)
        finally:
            duration = max(0.0, time.monotonic() - start)
            TOOL_LATENCY_SECONDS.labels(tool_name=tool_name).observe(duration)

        adapter = call.tool.result_adapter
        try:
            result = adapter.dump_python(adapter.validate_python(value), mode="json")
            # Transports encode strictly; NaN/Infinity would fail after the fact
            json.dumps(result, allow_nan=False)
        except (ValidationError, PydanticSerializationError, ValueError, TypeError) as e:
            _LOGGER.error("tool.execute.bad_result: name=%s error=%s", tool_name, e)
            return _error("tool_error", "Tool returned an invalid result", tool_name=tool_name)

        _LOGGER.info("tool.execute: name=%s duration=%.4fs", tool_name, duration)
        return {"result": result}


__all__ = ["ToolDispatcher", "ResolvedCall", "decode_arguments"]
