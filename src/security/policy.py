from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, runtime_checkable

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from security.identity import CallerIdentity


class PolicyLoadError(Exception):
    """Policy source missing or malformed. Fatal at startup."""


@runtime_checkable
class AuthPolicy(Protocol):
    """
    The only policy surface the call path depends on.

    Consulted on every call; the gate caches nothing.
    """

    def required_permission(self, tool_name: str) -> str | None:
        """Permission a caller needs for ``tool_name``; None when no rule exists."""
        ...

    def permissions_for(self, identity: CallerIdentity) -> frozenset[str]:
        """Every permission held by ``identity``."""
        ...


def _freeze(table: Mapping[str, Iterable[str]] | None) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({str(k): frozenset(v) for k, v in (table or {}).items()})


class StaticAuthPolicy:
    """
    In-memory policy tables.

    - rules: tool name -> required permission
    - grants: principal -> permissions
    - role_grants: role -> permissions (roles come from the caller identity)
    - role_inherits: role -> roles whose grants it also holds, transitively
      (e.g. owner -> admin -> user -> readonly)
    - anonymous: permissions of the anonymous caller; authenticated callers
      do not inherit them
    """

    def __init__(
        self,
        rules: Mapping[str, str] | None = None,
        grants: Mapping[str, Iterable[str]] | None = None,
        role_grants: Mapping[str, Iterable[str]] | None = None,
        anonymous: Iterable[str] = (),
        role_inherits: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._rules: Mapping[str, str] = MappingProxyType(dict(rules or {}))
        self._grants = _freeze(grants)
        self._role_grants = _freeze({r.strip().lower(): v for r, v in (role_grants or {}).items()})
        self._anonymous = frozenset(anonymous)
        self._role_inherits = _freeze(
            {r.strip().lower(): [i.strip().lower() for i in v] for r, v in (role_inherits or {}).items()}
        )

    @property
    def rules(self) -> Mapping[str, str]:
        return self._rules

    def required_permission(self, tool_name: str) -> str | None:
        return self._rules.get(tool_name)

    def effective_roles(self, roles: Iterable[str]) -> frozenset[str]:
        """Roles plus everything they inherit; cycles are tolerated."""
        seen: set[str] = set()
        pending = list(roles)
        while pending:
            role = pending.pop()
            if role in seen:
                continue
            seen.add(role)
            pending.extend(self._role_inherits.get(role, ()))
        return frozenset(seen)

    def permissions_for(self, identity: CallerIdentity) -> frozenset[str]:
        if identity.is_anonymous:
            return self._anonymous
        held: set[str] = set(self._grants.get(identity.principal or "", frozenset()))
        for role in self.effective_roles(identity.roles):
            held |= self._role_grants.get(role, frozenset())
        return frozenset(held)


class PolicyDocument(BaseModel):
    """On-disk policy shape (YAML)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    rules: dict[str, str] = Field(default_factory=dict)
    grants: dict[str, list[str]] = Field(default_factory=dict)
    roles: dict[str, list[str]] = Field(default_factory=dict)
    inherits: dict[str, list[str]] = Field(default_factory=dict)
    anonymous: list[str] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def permissions_not_blank(cls, v: dict[str, str]) -> dict[str, str]:
        out: dict[str, str] = {}
        for tool_name, perm in v.items():
            if not perm or not perm.strip():
                raise ValueError(f"rule for {tool_name!r} has an empty permission")
            out[tool_name] = perm.strip()
        return out

    def to_policy(self) -> StaticAuthPolicy:
        return StaticAuthPolicy(
            rules=self.rules,
            grants=self.grants,
            role_grants=self.roles,
            anonymous=self.anonymous,
            role_inherits=self.inherits,
        )


def load_policy(path: str | Path) -> StaticAuthPolicy:
    """
    Load a YAML policy file.

    Raises:
        PolicyLoadError: file missing/unreadable, invalid YAML or invalid schema.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyLoadError(f"cannot read policy file {p}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PolicyLoadError(f"invalid YAML in policy file {p}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PolicyLoadError(f"policy file {p} must contain a mapping")
    try:
        doc = PolicyDocument.model_validate(data)
    except ValidationError as e:
        raise PolicyLoadError(f"invalid policy file {p}: {e}") from e
    return doc.to_policy()


__all__ = [
    "AuthPolicy",
    "StaticAuthPolicy",
    "PolicyDocument",
    "PolicyLoadError",
    "load_policy",
]
