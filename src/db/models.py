from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base declarative class for all ORM models."""

    pass


class AuditLog(Base):
    """
    Append-only audit trail of authorization decisions.

    Columns:
      - id: primary key
      - timestamp: event time (server default now)
      - subject: caller principal, '<anonymous>' for anonymous callers
      - action: event verb ('authz.allow', 'authz.deny')
      - resource: 'tool:{name}'
      - decision: 'allow' | 'deny'
      - metadata: optional JSON payload; denial reason lives here and is never
        returned to callers
    """

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_subject_action", "subject", "action"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    resource: Mapped[str] = mapped_column(Text, nullable=False)
    decision: Mapped[str | None] = mapped_column(String(8), nullable=True)
    # Column named "metadata" in DB; attribute name "metadata_" to avoid Base.metadata conflict
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"AuditLog(id={self.id!r}, subject={self.subject!r}, action={self.action!r}, "
            f"resource={self.resource!r}, decision={self.decision!r})"
        )
