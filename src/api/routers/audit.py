from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from db.repositories.audit_repo import AuditRepository
from db.session import get_session
from security.auth import caller_identity
from security.identity import CallerIdentity

router = APIRouter(prefix="/audit", tags=["audit"])

AUDIT_ROLE = "auditor"


@router.get("/recent", response_class=JSONResponse)
def recent_decisions(
    request: Request,
    db: Session = Depends(get_session),
    identity: CallerIdentity = Depends(caller_identity),
) -> JSONResponse:
    """
    Newest authorization decisions, for callers carrying the ``auditor`` role.

    Query: limit (1..500, default 50), subject, action (authz.allow / authz.deny).
    """
    if identity.is_anonymous or AUDIT_ROLE not in identity.roles:
        raise HTTPException(status_code=403, detail="Access denied")

    qp = request.query_params
    try:
        limit = int(qp.get("limit", "50"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail="limit must be an integer") from e
    if limit < 1 or limit > 500:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 500")

    rows = AuditRepository.list_recent(
        db,
        limit=limit,
        subject=qp.get("subject") or None,
        action=qp.get("action") or None,
    )
    items = [
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            "subject": r.subject,
            "action": r.action,
            "resource": r.resource,
            "decision": r.decision,
            "metadata": r.metadata_ or {},
        }
        for r in rows
    ]
    return JSONResponse({"items": items, "limit": limit})
