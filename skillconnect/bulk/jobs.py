"""
Per-type bulk job implementations.

A job materializes its input sequence and turns each item into an
``ItemSuccess`` or ``ItemFailure``. Expected per-item failures (missing
fields, duplicate email, unknown user, undeliverable message) are returned
as values; the engine records them and moves on to the next item.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pydantic
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillconnect import audit
from skillconnect.audit import AuditAction
from skillconnect.bulk.config import BulkOperationsConfig
from skillconnect.bulk.csv_io import FIRST_DATA_LINE, parse_import_csv, write_export_csv
from skillconnect.bulk.outcomes import ItemFailure, ItemOutcome, ItemSuccess
from skillconnect.bulk.requests import (
    BulkDeleteParameters,
    BulkEmailParameters,
    BulkUpdateParameters,
    ExportParameters,
)
from skillconnect.db import models, schemas
from skillconnect.db.repositories import users as users_repo
from skillconnect.errors import ItemError, JobFatalError
from skillconnect.services.notification_sink import NotificationSink
from skillconnect.utils.passwords import MIN_PASSWORD_LENGTH, hash_password

logger = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Missing required fields (firstName, lastName, email)"
USER_EXISTS_ERROR = "User already exists"
USER_NOT_FOUND_ERROR = "User not found"

VALID_ROLES = ("mentee", "mentor", "admin")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class JobContext:
    db: Session
    operation: models.BulkOperation
    config: BulkOperationsConfig
    sink: NotificationSink

    @property
    def operation_id(self) -> str:
        return self.operation.operation_id

    @property
    def initiator_id(self) -> Optional[str]:
        return self.operation.initiated_by


class BulkJob:
    """Base class for jobs processed one item at a time."""

    per_item = True

    def __init__(self, ctx: JobContext):
        self.ctx = ctx

    @property
    def db(self) -> Session:
        return self.ctx.db

    def load_items(self) -> List[Any]:
        raise NotImplementedError

    async def process_item(self, index: int, item: Any) -> ItemOutcome:
        raise NotImplementedError

    def describe_item(self, item: Any) -> Any:
        """What is stored in failedItems when an item fails unexpectedly."""
        return item

    def line_number(self, index: int) -> Optional[int]:
        return None

    def item_index(self, index: int) -> Optional[int]:
        """Input position stored with each outcome."""
        return index

    def summary(self, progress: Dict[str, int]) -> Dict[str, Any]:
        return {
            "totalProcessed": progress["processed"],
            "successful": progress["successful"],
            "failed": progress["failed"],
        }


# ---------------------------------------------------------------- import

def redact_row(row: Dict[str, Any]) -> Dict[str, Any]:
    if row.get("password"):
        return {**row, "password": "***"}
    return dict(row)


def require_fields(row: Dict[str, Any]) -> None:
    if not all((row.get(col) or "").strip() for col in ("firstName", "lastName", "email")):
        raise ItemError(MISSING_FIELDS_ERROR)


def build_user_from_row(row: Dict[str, Any], default_password: str) -> Tuple[schemas.UserCreate, str]:
    """Turn one import row into a user payload and the password to hash.

    Raises ItemError for a row that cannot become a user.
    """
    require_fields(row)
    email = row["email"].strip().lower()
    if not _EMAIL_RE.match(email):
        raise ItemError(f"Invalid email address: {row['email']}")

    roles = [r.strip() for r in (row.get("roles") or "").split(",") if r.strip()] or ["mentee"]
    invalid = [r for r in roles if r not in VALID_ROLES]
    if invalid:
        raise ItemError(f"Invalid roles: {', '.join(invalid)}")

    password = row.get("password") or default_password
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ItemError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        payload = schemas.UserCreate(
            first_name=row["firstName"].strip(),
            last_name=row["lastName"].strip(),
            email=email,
            phone=(row.get("phone") or None),
            roles=roles,
            # Imported users are active and pre-verified
            account_status="active",
            email_verified=True,
            registration_source="bulk_import",
        )
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ItemError(f"Invalid {field}: {first.get('msg')}") from e
    return payload, password


class ImportJob(BulkJob):
    def load_items(self) -> List[Dict[str, Any]]:
        path = self.ctx.operation.input_file
        if not path:
            raise JobFatalError("Import operation has no input file")
        return parse_import_csv(path)

    def line_number(self, index: int) -> int:
        return index + FIRST_DATA_LINE

    def item_index(self, index: int) -> None:
        # Rows are identified by line number instead
        return None

    def describe_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return redact_row(item)

    async def process_item(self, index: int, row: Dict[str, Any]) -> ItemOutcome:
        line = self.line_number(index)
        item = redact_row(row)
        try:
            require_fields(row)
        except ItemError as e:
            return ItemFailure.from_error(e, item=item, line_number=line)

        if users_repo.get_user_by_email(self.db, row["email"]):
            return ItemFailure(item=item, error=USER_EXISTS_ERROR, line_number=line)

        try:
            payload, password = build_user_from_row(row, self.ctx.config.import_default_password)
        except ItemError as e:
            return ItemFailure.from_error(e, item=item, line_number=line)

        # Argon2 hashing blocks for tens of milliseconds; run it off the event loop
        password_hash = await asyncio.to_thread(hash_password, password)
        try:
            user = users_repo.create_user(self.db, payload, password_hash=password_hash)
        except IntegrityError:
            # Unique email index caught a concurrent insert
            self.db.rollback()
            return ItemFailure(item=item, error=USER_EXISTS_ERROR, line_number=line)

        audit.log_user(
            self.db,
            actor_user_id=self.ctx.initiator_id,
            user_id=user.id,
            action=AuditAction.USER_CREATED,
            metadata={"source": "bulk_import", "operationId": self.ctx.operation_id},
        )
        return ItemSuccess(user.to_document())


# ---------------------------------------------------------------- per-user jobs

class _UserIdJob(BulkJob):
    def describe_item(self, user_id: str) -> Dict[str, Any]:
        return {"userId": user_id}

    def _not_found(self, user_id: str) -> ItemFailure:
        return ItemFailure(item={"userId": user_id}, error=USER_NOT_FOUND_ERROR)


class BulkUpdateJob(_UserIdJob):
    def __init__(self, ctx: JobContext):
        super().__init__(ctx)
        self.params = BulkUpdateParameters.model_validate(ctx.operation.parameters or {})

    def load_items(self) -> List[str]:
        return list(self.params.user_ids)

    def _patch(self) -> schemas.UserUpdate:
        updates = self.params.updates
        return schemas.UserUpdate(
            roles=updates.roles,
            account_status=updates.status,
            suspension_reason=updates.suspension_reason,
        )

    async def process_item(self, index: int, user_id: str) -> ItemOutcome:
        user = users_repo.get_user(self.db, user_id)
        if user is None:
            return self._not_found(user_id)

        user = users_repo.update_user(self.db, user, self._patch())
        audit.log_user(
            self.db,
            actor_user_id=self.ctx.initiator_id,
            user_id=user.id,
            action=AuditAction.USER_UPDATED,
            metadata={
                "source": "bulk_update",
                "operationId": self.ctx.operation_id,
                "updates": self.params.updates.stored(),
            },
        )
        return ItemSuccess(user.to_document())


class BulkDeleteJob(_UserIdJob):
    def __init__(self, ctx: JobContext):
        super().__init__(ctx)
        self.params = BulkDeleteParameters.model_validate(ctx.operation.parameters or {})

    def load_items(self) -> List[str]:
        return list(self.params.user_ids)

    async def process_item(self, index: int, user_id: str) -> ItemOutcome:
        user = users_repo.get_user(self.db, user_id)
        if user is None:
            return self._not_found(user_id)
        if user.id == self.ctx.initiator_id:
            return ItemFailure(item={"userId": user_id}, error="Cannot delete the initiating user")

        deleted = {"userId": user.id, "email": user.email}
        users_repo.delete_user(self.db, user)
        audit.log_user(
            self.db,
            actor_user_id=self.ctx.initiator_id,
            user_id=deleted["userId"],
            action=AuditAction.USER_DELETED,
            metadata={"source": "bulk_delete", "operationId": self.ctx.operation_id, "email": deleted["email"]},
        )
        return ItemSuccess(deleted)


class BulkEmailJob(_UserIdJob):
    def __init__(self, ctx: JobContext):
        super().__init__(ctx)
        self.params = BulkEmailParameters.model_validate(ctx.operation.parameters or {})

    def load_items(self) -> List[str]:
        return list(self.params.recipients)

    async def process_item(self, index: int, user_id: str) -> ItemOutcome:
        user = users_repo.get_user(self.db, user_id)
        if user is None:
            return self._not_found(user_id)

        attempts = self.ctx.config.email_max_attempts
        last_error = "Delivery failed"
        for attempt in range(1, attempts + 1):
            try:
                result = await self.ctx.sink.send(
                    user.email,
                    self.params.subject,
                    self.params.message,
                    template=self.params.template,
                )
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
            else:
                if result.success:
                    return ItemSuccess({"userId": user.id, "email": user.email})
                last_error = result.error or "Delivery failed"
            if attempt < attempts:
                logger.debug("email_retry operation_id=%s user_id=%s attempt=%d", self.ctx.operation_id, user_id, attempt)
        return ItemFailure(item={"userId": user_id}, error=last_error)


# ---------------------------------------------------------------- export

class ExportJob(BulkJob):
    """Single query, single artifact; not processed per item."""

    per_item = False

    def __init__(self, ctx: JobContext):
        super().__init__(ctx)
        self.params = ExportParameters.model_validate(ctx.operation.parameters or {})

    def output_path(self) -> Path:
        return Path(self.ctx.config.export_dir) / f"users_export_{self.ctx.operation_id}.csv"

    def query_documents(self) -> List[Dict[str, Any]]:
        users = users_repo.query_users(self.db, self.params.filters)
        return [u.to_document() for u in users]

    def write(self, documents: List[Dict[str, Any]]) -> Tuple[Path, Dict[str, Any]]:
        path = self.output_path()
        fields = self.params.export_fields()
        count = write_export_csv(path, documents, fields)
        return path, {"totalExported": count, "fileName": path.name, "fields": fields}


JOB_CLASSES = {
    "import": ImportJob,
    "export": ExportJob,
    "bulk_update": BulkUpdateJob,
    "bulk_delete": BulkDeleteJob,
    "bulk_email": BulkEmailJob,
}
