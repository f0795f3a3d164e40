"""
Authentication helpers and identity resolution.

Identity arrives in trusted proxy headers. Addresses listed in
``ADMIN_EMAILS`` are provisioned as admins the first time they are seen;
everyone else must already exist in the user store.
"""
import logging
import os
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from skillconnect.db import models, schemas
from skillconnect.db.repositories import users as users_repo
from skillconnect import audit
from skillconnect.audit import AuditAction

logger = logging.getLogger(__name__)


def _normalize_list_env(var_name: str) -> set:
    raw = os.getenv(var_name, "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _admin_emails() -> set:
    return _normalize_list_env("ADMIN_EMAILS")


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = users_repo.normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def _split_name(display_name: Optional[str], email: str) -> Tuple[str, str]:
    parts = (display_name or "").split()
    if len(parts) >= 2:
        return parts[0][:50], " ".join(parts[1:])[:50]
    local = email.split("@")[0] or "admin"
    return (parts[0] if parts else local)[:50], "Admin"


def get_or_provision_user(db: Session, email: str, display_name: Optional[str] = None) -> Optional[models.User]:
    """Return the user for ``email``; admins from ADMIN_EMAILS are created or promoted."""
    user = users_repo.get_user_by_email(db, email)
    admins = _admin_emails()

    if user is None:
        if email not in admins:
            return None
        first_name, last_name = _split_name(display_name, email)
        user = users_repo.create_user(
            db,
            schemas.UserCreate(
                first_name=first_name,
                last_name=last_name,
                email=email,
                roles=["admin"],
                account_status="active",
                email_verified=True,
                registration_source="admin_provisioned",
            ),
        )
        logger.info("admin_provisioned email=%s", email)
        audit.log_user(
            db,
            actor_user_id=user.id,
            user_id=user.id,
            action=AuditAction.USER_CREATED,
            metadata={"source": "admin_emails"},
        )
        return user

    # Existing users might predate a new ADMIN_EMAILS value; promote them when necessary.
    if email in admins and not user.has_role("admin"):
        user = users_repo.update_user(db, user, schemas.UserUpdate(roles=[*(user.roles or []), "admin"]))
        audit.log_user(
            db,
            actor_user_id=user.id,
            user_id=user.id,
            action=AuditAction.ROLE_ASSIGNED,
            metadata={"source": "admin_emails", "roles": list(user.roles)},
        )
    return user
