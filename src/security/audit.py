from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_LOGGER = logging.getLogger("toolgate.audit")


@dataclass(frozen=True)
class AuditEvent:
    subject: str
    action: str
    resource: str
    decision: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


AuditSink = Callable[[AuditEvent], None]


def database_audit_sink(event: AuditEvent) -> None:
    """Persist one event through AuditRepository in its own session."""
    # Imported here so pure policy/gate imports never create an engine
    from db.repositories.audit_repo import AuditRepository
    from db.session import SessionLocal

    with SessionLocal() as db:
        AuditRepository.record(
            db,
            subject=event.subject,
            action=event.action,
            resource=event.resource,
            decision=event.decision,
            metadata=dict(event.metadata) or None,
        )


def emit(sink: AuditSink | None, event: AuditEvent) -> None:
    """Deliver an event; sink failures are logged and never reach the caller."""
    if sink is None:
        return
    try:
        sink(event)
    except Exception as e:
        _LOGGER.error(
            "audit.sink.error: action=%s resource=%s error=%s", event.action, event.resource, e
        )


__all__ = ["AuditEvent", "AuditSink", "database_audit_sink", "emit"]
