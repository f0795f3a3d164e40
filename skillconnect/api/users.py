"""
Users API endpoints.

Self-service profile, role switch, deactivation and activity history, plus
admin moderation: listing users, changing account status and assigning
roles. Every change is audited.
"""
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from skillconnect.api.audits import audit_log_to_schema
from skillconnect.api.deps import get_current_user_context, require_admin
from skillconnect.audit import AuditAction, log_user
from skillconnect.db import models, schemas
from skillconnect.db.database import get_db
from skillconnect.db.repositories import audits as audit_repo
from skillconnect.db.repositories import users as users_repo

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=schemas.User)
def get_me(user_context=Depends(get_current_user_context)):
    user, _ctx = user_context
    return user


@router.put("/users/me/switch-role", response_model=schemas.User)
def switch_role(
    payload: schemas.RoleSwitch,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    if not user.has_role(payload.role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You do not have permission to switch to this role",
        )
    previous = user.current_role
    user = users_repo.update_user(db, user, schemas.UserUpdate(current_role=payload.role))

    log_user(
        db,
        actor_user_id=user.id,
        user_id=user.id,
        action=AuditAction.ROLE_SWITCHED,
        metadata={"from": previous, "to": user.current_role},
    )
    return user


@router.put("/users/me/deactivate", response_model=schemas.User)
def deactivate_me(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    previous = user.account_status
    user = users_repo.update_user(db, user, schemas.UserUpdate(account_status="inactive"))

    log_user(
        db,
        actor_user_id=user.id,
        user_id=user.id,
        action=AuditAction.USER_DEACTIVATED,
        metadata={"from": previous, "to": user.account_status},
    )
    return user


@router.get("/users/me/activity", response_model=schemas.ActivityPage)
def my_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Audit entries about the caller, newest first."""
    user, _ctx = user_context
    logs = audit_repo.get_audit_logs(db, target_id=user.id, skip=(page - 1) * limit, limit=limit)
    total = audit_repo.count_audit_logs(db, target_id=user.id)
    return schemas.ActivityPage(
        activities=[audit_log_to_schema(log) for log in logs],
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )


@router.get("/admin/users", response_model=List[schemas.User])
def list_users(
    status_filter: Optional[str] = Query(None, alias="status"),
    role: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    return users_repo.list_users(db, status=status_filter, role=role, skip=skip, limit=limit)


def _get_user_or_404(db: Session, user_id: str) -> models.User:
    user = users_repo.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/admin/users/{user_id}", response_model=schemas.User)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    return _get_user_or_404(db, user_id)


@router.patch("/admin/users/{user_id}/status", response_model=schemas.User)
def update_user_status(
    user_id: str,
    payload: schemas.UserStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    actor, _ctx = user_context
    user = _get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot change your own account status")

    previous = user.account_status
    if payload.status == "suspended":
        action = AuditAction.USER_SUSPENDED
    elif previous == "suspended":
        action = AuditAction.USER_REACTIVATED
    else:
        action = AuditAction.USER_UPDATED

    user.account_status = payload.status
    user.suspension_reason = payload.reason if payload.status == "suspended" else None
    db.commit()
    db.refresh(user)

    log_user(
        db,
        actor_user_id=actor.id,
        user_id=user.id,
        action=action,
        reason=payload.reason,
        metadata={"from": previous, "to": user.account_status},
    )
    return user


@router.patch("/admin/users/{user_id}/roles", response_model=schemas.User)
def update_user_roles(
    user_id: str,
    payload: schemas.UserRolesUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    actor, _ctx = user_context
    user = _get_user_or_404(db, user_id)
    previous = list(user.roles or [])
    roles = list(dict.fromkeys(payload.roles))
    user = users_repo.update_user(db, user, schemas.UserUpdate(roles=roles))

    log_user(
        db,
        actor_user_id=actor.id,
        user_id=user.id,
        action=AuditAction.ROLE_ASSIGNED,
        metadata={"from": previous, "to": list(user.roles)},
    )
    return user
