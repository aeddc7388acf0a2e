from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CallerIdentity:
    """
    Principal presented with an inbound call.

    ``principal is None`` is the anonymous caller. It never compares equal to
    an authenticated principal, whatever that principal is called.
    """

    principal: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> CallerIdentity:
        return cls(principal=None)

    @classmethod
    def of(cls, principal: str, roles: Iterable[str] = ()) -> CallerIdentity:
        return cls(principal=principal, roles=normalize_roles(roles))

    @property
    def is_anonymous(self) -> bool:
        return self.principal is None

    @property
    def audit_subject(self) -> str:
        return "<anonymous>" if self.principal is None else self.principal


def normalize_roles(roles: Iterable[str]) -> frozenset[str]:
    return frozenset(r.strip().lower() for r in roles if isinstance(r, str) and r.strip())


__all__ = ["CallerIdentity", "normalize_roles"]
