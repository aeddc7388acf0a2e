from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from security.auth import caller_identity
from security.gate import decide
from security.identity import CallerIdentity
from toolgate.startup import ToolService

router = APIRouter(prefix="/tools", tags=["tools"])

_LOGGER = logging.getLogger("toolgate")

# Dispatcher error category -> HTTP status
_STATUS_BY_CATEGORY = {
    "access_denied": 403,
    "validation_error": 422,
    "tool_error": 500,
}


class CallRequest(BaseModel):
    """Body of a tool call. ``arguments`` may also be JSON object text."""

    arguments: dict[str, Any] | str | None = Field(default=None)


def _service(request: Request) -> ToolService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return service


@router.get("", response_class=JSONResponse)
async def list_tools(
    request: Request,
    identity: CallerIdentity = Depends(caller_identity),
) -> JSONResponse:
    """
    Discovery listing of tool descriptors in registration order.

    Unfiltered unless APP_DISCOVERY_FILTERED is set; then only the tools the
    caller is currently allowed to call are listed. Filtering does not audit.
    """
    service = _service(request)
    descriptors = service.registry.list()
    if request.app.state.discovery_filtered:
        names = service.registry.names()
        policy = service.gate.policy
        descriptors = [d for d in descriptors if decide(policy, identity, d.name, names).allowed]
    return JSONResponse({"tools": [d.to_dict() for d in descriptors]})


@router.post("/{name}/call", response_class=JSONResponse)
def call_tool(
    name: str,
    request: Request,
    body: CallRequest | None = None,
    identity: CallerIdentity = Depends(caller_identity),
) -> JSONResponse:
    """
    Invoke one tool on behalf of the caller.

    200 {"result": ...} on success; 403 for any denial (the body never says why),
    422 for arguments that do not fit the tool, 500 when the tool fails.
    """
    service = _service(request)
    arguments = body.arguments if body is not None else None
    outcome = service.dispatcher.dispatch(identity, name, arguments)
    err = outcome.get("error")
    if err is None:
        return JSONResponse(outcome, status_code=200)
    return JSONResponse(outcome, status_code=_STATUS_BY_CATEGORY.get(err["category"], 500))
