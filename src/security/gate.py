from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from observability.metrics import AUTHZ_DECISION_COUNT
from security.audit import AuditEvent, AuditSink, emit
from security.identity import CallerIdentity
from security.policy import AuthPolicy

_AUDIT_LOGGER = logging.getLogger("toolgate.audit")


class DenyReason(str, Enum):
    """Internal reason for a denial. Audit only; never sent to callers."""

    NO_POLICY_FOR_TOOL = "no_policy_for_tool"
    INSUFFICIENT_PERMISSION = "insufficient_permission"


@dataclass(frozen=True)
class Allow:
    allowed: ClassVar[bool] = True


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    allowed: ClassVar[bool] = False


Decision = Union[Allow, Deny]


def decide(
    policy: AuthPolicy,
    identity: CallerIdentity | None,
    tool_name: str,
    tool_names: frozenset[str] | None = None,
) -> Decision:
    """
    Pure allow/deny decision.

    - tool outside ``tool_names`` (when given) or without a rule -> NO_POLICY_FOR_TOOL
    - caller lacks the rule's permission -> INSUFFICIENT_PERMISSION
    - otherwise Allow

    A missing identity is the anonymous caller and needs explicit grants like
    any other principal.
    """
    if tool_names is not None and tool_name not in tool_names:
        return Deny(DenyReason.NO_POLICY_FOR_TOOL)
    required = policy.required_permission(tool_name)
    if not required:
        return Deny(DenyReason.NO_POLICY_FOR_TOOL)
    who = identity if identity is not None else CallerIdentity.anonymous()
    if required in policy.permissions_for(who):
        return Allow()
    return Deny(DenyReason.INSUFFICIENT_PERMISSION)


class AuthorizationGate:
    """
    Per-call authorization in front of the tool registry.

    Holds read-only references to the policy and to the registry's name set.
    Decisions are recomputed on every call; nothing is cached.
    """

    def __init__(
        self,
        policy: AuthPolicy,
        tool_names: Iterable[str] | None = None,
        *,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._policy = policy
        self._tool_names = frozenset(tool_names) if tool_names is not None else None
        self._audit_sink = audit_sink

    @property
    def policy(self) -> AuthPolicy:
        return self._policy

    def authorize(self, identity: CallerIdentity | None, tool_name: str) -> Decision:
        decision = decide(self._policy, identity, tool_name, self._tool_names)
        subject = identity.audit_subject if identity is not None else "<anonymous>"
        if isinstance(decision, Deny):
            _AUDIT_LOGGER.warning(
                "authz.deny: subject=%s tool=%s reason=%s",
                subject,
                tool_name,
                decision.reason.value,
            )
            AUTHZ_DECISION_COUNT.labels(decision="deny").inc()
            event = AuditEvent(
                subject=subject,
                action="authz.deny",
                resource=f"tool:{tool_name}",
                decision="deny",
                metadata={"reason": decision.reason.value},
            )
        else:
            _AUDIT_LOGGER.info("authz.allow: subject=%s tool=%s", subject, tool_name)
            AUTHZ_DECISION_COUNT.labels(decision="allow").inc()
            event = AuditEvent(
                subject=subject,
                action="authz.allow",
                resource=f"tool:{tool_name}",
                decision="allow",
            )
        emit(self._audit_sink, event)
        return decision


__all__ = ["Allow", "Deny", "DenyReason", "Decision", "decide", "AuthorizationGate"]
