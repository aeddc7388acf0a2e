from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import AuditLog


class AuditRepository:
    """
    Repository for append-only audit logging.
    """

    @staticmethod
    def record(
        db: Session,
        *,
        subject: str,
        action: str,
        resource: str,
        decision: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """
        Persist an audit log entry and return its primary key.

        Notes:
        - Do not include arguments or results in metadata. Keep payload minimal.
        """
        row = AuditLog(
            subject=str(subject),
            action=str(action),
            resource=str(resource),
            decision=decision,
            metadata_=metadata or None,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return int(row.id)

    @staticmethod
    def list_recent(
        db: Session,
        *,
        limit: int = 50,
        subject: str | None = None,
        action: str | None = None,
    ) -> list[AuditLog]:
        """Newest entries first, optionally filtered by subject and/or action."""
        stmt = select(AuditLog)
        if subject is not None:
            stmt = stmt.where(AuditLog.subject == subject)
        if action is not None:
            stmt = stmt.where(AuditLog.action == action)
        stmt = stmt.order_by(AuditLog.id.desc()).limit(max(1, int(limit)))
        return list(db.execute(stmt).scalars().all())
