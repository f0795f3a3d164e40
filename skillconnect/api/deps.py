"""
API dependency helpers.

Resolves the calling user from proxy headers and gates admin-only routes.
"""
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from skillconnect.api.auth import get_or_provision_user, resolve_identity_from_headers
from skillconnect.bulk.engine import BulkOperationEngine, build_bulk_engine
from skillconnect.db.database import get_db

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved, 403 for suspended accounts.


def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[Any, Dict[str, Any]]:
    name, email = resolve_identity_from_headers(
        x_auth_request_user=x_auth_request_user,
        x_auth_request_email=x_auth_request_email,
        x_forwarded_user=x_forwarded_user,
        x_forwarded_email=x_forwarded_email,
    )
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    user = get_or_provision_user(db, email=email, display_name=name)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    if user.account_status == "suspended":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account suspended")

    current_user = {
        "id": user.id,
        "email": user.email,
        "roles": list(user.roles or []),
        "current_role": user.current_role,
        "is_admin": user.has_role("admin"),
    }
    return user, current_user


def require_admin(user_context=Depends(get_current_user_context)) -> Tuple[Any, Dict[str, Any]]:
    user, current_user = user_context
    if not current_user.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user, current_user


def get_bulk_engine(request: Request) -> BulkOperationEngine:
    """The application's engine, created on first use."""
    engine = getattr(request.app.state, "bulk_engine", None)
    if engine is None:
        engine = build_bulk_engine()
        request.app.state.bulk_engine = engine
    return engine
