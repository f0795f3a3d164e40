"""
User repository functions.

The user store for bulk jobs and admin endpoints: lookups by id and
case-insensitive email, create/update/delete, and filter-object queries.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from skillconnect.db import models, schemas
from skillconnect.db.filters import compile_filters

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    if not is_object_id(user_id):
        return None
    return db.query(models.User).filter(models.User.id == user_id.lower()).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(models.User).filter(models.User.email == normalized).first()


def create_user(
    db: Session,
    user: schemas.UserCreate,
    *,
    password_hash: Optional[str] = None,
    commit: bool = True,
) -> models.User:
    data = user.model_dump()
    data["email"] = normalize_email(data["email"])
    roles = data.get("roles") or ["mentee"]
    db_user = models.User(
        **data,
        current_role=roles[0],
        password_hash=password_hash,
    )
    db.add(db_user)
    if commit:
        db.commit()
        db.refresh(db_user)
    else:
        db.flush()
    return db_user


def update_user(db: Session, db_user: models.User, patch: schemas.UserUpdate) -> models.User:
    update_data = patch.model_dump(exclude_unset=True, exclude_none=True)
    roles = update_data.get("roles")
    if roles is not None:
        update_data["roles"] = list(roles)
        if db_user.current_role not in roles and "current_role" not in update_data:
            update_data["current_role"] = roles[0]
    for key, value in update_data.items():
        setattr(db_user, key, value)
    db.commit()
    db.refresh(db_user)
    return db_user


def delete_user(db: Session, db_user: models.User) -> None:
    db.delete(db_user)
    db.commit()


def query_users(
    db: Session,
    filters: Optional[Dict[str, Any]] = None,
    *,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[models.User]:
    """Return users matching a store filter object, oldest first."""
    criteria, predicates = compile_filters(filters or {})
    query = db.query(models.User)
    if criteria:
        query = query.filter(*criteria)
    query = query.order_by(models.User.created_at.asc(), models.User.id.asc())
    if not predicates:
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    matched = [u for u in query.all() if all(p(u) for p in predicates)]
    end = None if limit is None else skip + limit
    return matched[skip:end]


def list_users(
    db: Session,
    *,
    status: Optional[str] = None,
    role: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.User]:
    filters: Dict[str, Any] = {}
    if status:
        filters["account.status"] = status
    if role:
        filters["roles"] = role
    return query_users(db, filters, skip=skip, limit=limit)
