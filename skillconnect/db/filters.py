"""
User document paths and store filter compilation.

Export field lists and export filters address users through the nested
document view (``models.User.to_document``) using dotted paths such as
``account.status``. This module maps those paths to columns and turns a
filter object into SQL criteria plus, for list-valued paths, in-Python
predicates.

Filter object grammar::

    {"account.status": "active"}                # equality
    {"roles": "mentor"}                         # list membership
    {"account.status": {"$in": ["active", "inactive"]}}
    {"currentRole": {"$ne": "admin"}}
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

from skillconnect.db import models

# Document path -> ORM attribute name
DOCUMENT_FIELDS: Dict[str, str] = {
    "_id": "id",
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "roles": "roles",
    "currentRole": "current_role",
    "account.status": "account_status",
    "account.suspensionReason": "suspension_reason",
    "verification.email.isVerified": "email_verified",
    "metadata.registrationSource": "registration_source",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

FILTERABLE_FIELDS = frozenset({
    "_id",
    "firstName",
    "lastName",
    "email",
    "phone",
    "roles",
    "currentRole",
    "account.status",
    "verification.email.isVerified",
    "metadata.registrationSource",
})

LIST_FIELDS = frozenset({"roles"})

SUPPORTED_OPERATORS = frozenset({"$in", "$ne"})

UserPredicate = Callable[[models.User], bool]


def get_path(document: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted path inside a nested document; missing -> None."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def validate_filters(filters: Dict[str, Any]) -> None:
    """Raise ValueError when a filter uses an unknown path or operator."""
    if not isinstance(filters, dict):
        raise ValueError("filters must be an object")
    for path, condition in filters.items():
        if path not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported filter field: {path}")
        if isinstance(condition, dict):
            if not condition:
                raise ValueError(f"Empty operator object for {path}")
            for op, operand in condition.items():
                if op not in SUPPORTED_OPERATORS:
                    raise ValueError(f"Unsupported filter operator {op} for {path}")
                if op == "$in" and not isinstance(operand, list):
                    raise ValueError(f"$in expects a list for {path}")


def _normalize(path: str, value: Any) -> Any:
    if path == "email" and isinstance(value, str):
        return value.strip().lower()
    return value


def compile_filters(filters: Dict[str, Any]) -> Tuple[List[Any], List[UserPredicate]]:
    """Split a filter object into SQL criteria and Python predicates.

    List-valued paths (``roles``) are matched in Python so the same filter
    works on PostgreSQL JSONB and on SQLite JSON storage.
    """
    validate_filters(filters)
    criteria: List[Any] = []
    predicates: List[UserPredicate] = []

    for path, condition in filters.items():
        attr = DOCUMENT_FIELDS[path]
        if path in LIST_FIELDS:
            predicates.extend(_list_predicates(attr, condition))
            continue
        column = getattr(models.User, attr)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op == "$in":
                    criteria.append(column.in_([_normalize(path, v) for v in operand]))
                else:
                    criteria.append(column != _normalize(path, operand))
        else:
            criteria.append(column == _normalize(path, condition))
    return criteria, predicates


def _list_predicates(attr: str, condition: Any) -> List[UserPredicate]:
    def values(user: models.User) -> List[Any]:
        return list(getattr(user, attr) or [])

    if not isinstance(condition, dict):
        return [lambda u, wanted=condition: wanted in values(u)]

    preds: List[UserPredicate] = []
    for op, operand in condition.items():
        if op == "$in":
            wanted = set(operand)
            preds.append(lambda u, w=wanted: bool(w.intersection(values(u))))
        else:
            preds.append(lambda u, unwanted=operand: unwanted not in values(u))
    return preds
