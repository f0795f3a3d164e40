"""
Audit log API endpoints.

Query audit logs; admin only.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from skillconnect.api.deps import require_admin
from skillconnect.db import models, schemas
from skillconnect.db.database import get_db
from skillconnect.db.repositories import audits as audit_repo

router = APIRouter(prefix="/audits", tags=["audits"])


def audit_log_to_schema(log: models.AuditLog) -> schemas.AuditLog:
    # Schema expects .metadata but the model attribute is metadata_json
    return schemas.AuditLog(
        id=log.id,
        actor_user_id=log.actor_user_id,
        action_type=log.action_type,
        status=log.status,
        target_type=log.target_type,
        target_id=log.target_id,
        reason=log.reason,
        metadata=log.metadata_json,
        created_at=log.created_at,
    )


@router.get("", response_model=List[schemas.AuditLog])
def list_audit_logs(
    actor_user_id: Optional[str] = None,
    target_id: Optional[str] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    audit_logs = audit_repo.get_audit_logs(
        db,
        actor_user_id=actor_user_id,
        target_id=target_id,
        action_type=action_type,
        status=status,
        skip=skip,
        limit=limit,
    )
    return [audit_log_to_schema(log) for log in audit_logs]
