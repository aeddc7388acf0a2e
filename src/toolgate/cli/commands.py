from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from config.settings import get_settings
from security.gate import Deny, decide
from security.identity import CallerIdentity
from security.policy import load_policy
from tools.decorators import load_declarations
from tools.registry import ToolRegistry, build_registry


def _registry_for(modules: Sequence[str] | None) -> ToolRegistry:
    names = list(modules) if modules else get_settings().tool_modules
    return build_registry(load_declarations(names))


def run_build(modules: Sequence[str] | None) -> dict[str, Any]:
    """Build pass: every declaration validated, descriptors in registration order."""
    registry = _registry_for(modules)
    return {"tools": [d.to_dict() for d in registry.list()]}


def run_check_policy(policy_path: str | Path, modules: Sequence[str] | None) -> dict[str, Any]:
    """Tools without a rule are reported; the gate denies them at runtime."""
    policy = load_policy(policy_path)
    registry = _registry_for(modules)
    names = registry.names()
    covered = sorted(n for n in names if policy.required_permission(n))
    uncovered = sorted(n for n in names if not policy.required_permission(n))
    stale = sorted(n for n in policy.rules if n not in names)
    return {"covered": covered, "without_rule": uncovered, "rules_for_unknown_tools": stale}


def run_authorize(
    policy_path: str | Path,
    modules: Sequence[str] | None,
    *,
    principal: str | None,
    roles: Iterable[str],
    tool_name: str,
) -> dict[str, Any]:
    policy = load_policy(policy_path)
    registry = _registry_for(modules)
    identity = (
        CallerIdentity.of(principal, roles) if principal else CallerIdentity.anonymous()
    )
    decision = decide(policy, identity, tool_name, registry.names())
    out: dict[str, Any] = {
        "principal": identity.audit_subject,
        "tool": tool_name,
        "decision": "allow" if decision.allowed else "deny",
    }
    if isinstance(decision, Deny):
        out["reason"] = decision.reason.value
    return out


def write_text_file(path: str | Path, content: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content + "\n", encoding="utf-8")
    return p


def to_json(data: dict[str, Any]) -> str:
    """
    Serialize dict payloads to indented JSON for CLI printing.
    """
    return json.dumps(data, ensure_ascii=False, indent=2)
