"""
Bulk operations repository functions.

The operation record store: create/read/list/update for bulk operation
records plus the incremental progress writes the bulk engine performs.
Every write re-checks that the record is not terminal; a terminal record
is never mutated again.
"""
from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from skillconnect.db import schemas, models
from skillconnect.errors import InvalidStateError

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED})

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_operation_id() -> str:
    """Return an external id of the form ``op_<epoch-millis>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"op_{int(time.time() * 1000)}_{suffix}"


def empty_results() -> Dict[str, Any]:
    return {"successfulItems": [], "failedItems": [], "summary": {}}


def is_terminal(operation: models.BulkOperation) -> bool:
    return operation.status in TERMINAL_STATUSES


def _ensure_mutable(operation: models.BulkOperation) -> None:
    if is_terminal(operation):
        raise InvalidStateError(
            f"Operation {operation.operation_id} is {operation.status} and can no longer change"
        )


def create_bulk_operation(db: Session, bulk_operation: schemas.BulkOperationCreate, initiated_by: Optional[str]):
    db_bulk_operation = models.BulkOperation(
        operation_id=generate_operation_id(),
        type=bulk_operation.type,
        parameters=bulk_operation.parameters or {},
        input_file=bulk_operation.input_file,
        initiated_by=initiated_by,
        status=STATUS_PENDING,
        results=empty_results(),
    )
    db.add(db_bulk_operation)
    db.commit()
    db.refresh(db_bulk_operation)
    return db_bulk_operation


def get_bulk_operation(db: Session, operation_id: str) -> Optional[models.BulkOperation]:
    return db.query(models.BulkOperation).filter(models.BulkOperation.operation_id == operation_id).first()


def _filtered(db: Session, initiated_by: Optional[str], status: Optional[str]):
    query = db.query(models.BulkOperation)
    if initiated_by:
        query = query.filter(models.BulkOperation.initiated_by == initiated_by)
    if status:
        query = query.filter(models.BulkOperation.status == status)
    return query


def get_bulk_operations(
    db: Session,
    initiated_by: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.BulkOperation]:
    query = _filtered(db, initiated_by, status)
    return query.order_by(models.BulkOperation.created_at.desc()).offset(skip).limit(limit).all()


def count_bulk_operations(db: Session, initiated_by: Optional[str] = None, status: Optional[str] = None) -> int:
    return _filtered(db, initiated_by, status).count()


def mark_processing(db: Session, operation: models.BulkOperation) -> models.BulkOperation:
    _ensure_mutable(operation)
    operation.status = STATUS_PROCESSING
    operation.start_time = datetime.now(timezone.utc)
    db.commit()
    db.refresh(operation)
    return operation


def request_cancel(db: Session, operation: models.BulkOperation) -> models.BulkOperation:
    """Ask whichever process runs the job to stop before its next item."""
    _ensure_mutable(operation)
    operation.cancel_requested = True
    db.commit()
    db.refresh(operation)
    return operation


def set_total(db: Session, operation: models.BulkOperation, total: int) -> None:
    _ensure_mutable(operation)
    operation.progress_total = total
    db.commit()


def _results(operation: models.BulkOperation) -> Dict[str, Any]:
    if operation.results is None:
        operation.results = empty_results()
    results = operation.results
    results.setdefault("successfulItems", [])
    results.setdefault("failedItems", [])
    results.setdefault("summary", {})
    return results


def record_item_success(
    db: Session,
    operation: models.BulkOperation,
    item: Any,
    *,
    index: Optional[int] = None,
) -> None:
    """Append a successful item and advance the counters in one commit."""
    _ensure_mutable(operation)
    if index is not None and isinstance(item, dict):
        item = {**item, "index": index}
    _results(operation)["successfulItems"].append(item)
    flag_modified(operation, "results")
    operation.progress_processed = (operation.progress_processed or 0) + 1
    operation.progress_successful = (operation.progress_successful or 0) + 1
    db.commit()


def record_item_failure(
    db: Session,
    operation: models.BulkOperation,
    item: Any,
    error: str,
    *,
    line_number: Optional[int] = None,
    index: Optional[int] = None,
) -> None:
    """Append a failed item and advance the counters in one commit."""
    _ensure_mutable(operation)
    entry: Dict[str, Any] = {"item": item, "error": error}
    if line_number is not None:
        entry["lineNumber"] = line_number
    if index is not None:
        entry["index"] = index
    _results(operation)["failedItems"].append(entry)
    flag_modified(operation, "results")
    operation.progress_processed = (operation.progress_processed or 0) + 1
    operation.progress_failed = (operation.progress_failed or 0) + 1
    db.commit()


def record_bulk_progress(db: Session, operation: models.BulkOperation, count: int) -> None:
    """Set all counters at once for jobs that are not processed per item (export)."""
    _ensure_mutable(operation)
    operation.progress_total = count
    operation.progress_processed = count
    operation.progress_successful = count
    operation.progress_failed = 0
    db.commit()


def complete_bulk_operation(
    db: Session,
    operation: models.BulkOperation,
    summary: Dict[str, Any],
    *,
    output_file: Optional[str] = None,
) -> models.BulkOperation:
    _ensure_mutable(operation)
    _results(operation)["summary"] = summary
    flag_modified(operation, "results")
    if output_file is not None:
        operation.output_file = output_file
    operation.status = STATUS_COMPLETED
    operation.end_time = datetime.now(timezone.utc)
    db.commit()
    db.refresh(operation)
    return operation


def fail_bulk_operation(db: Session, operation: models.BulkOperation, error: str) -> models.BulkOperation:
    """Terminal failure; already-applied item effects are left in place."""
    _ensure_mutable(operation)
    _results(operation)["summary"] = {"error": error}
    flag_modified(operation, "results")
    operation.status = STATUS_FAILED
    operation.end_time = datetime.now(timezone.utc)
    db.commit()
    db.refresh(operation)
    return operation


def cancel_bulk_operation(db: Session, operation: models.BulkOperation) -> models.BulkOperation:
    _ensure_mutable(operation)
    progress = operation.progress
    _results(operation)["summary"] = {
        "cancelled": True,
        "totalProcessed": progress["processed"],
        "successful": progress["successful"],
        "failed": progress["failed"],
    }
    flag_modified(operation, "results")
    operation.status = STATUS_CANCELLED
    operation.end_time = datetime.now(timezone.utc)
    db.commit()
    db.refresh(operation)
    return operation
