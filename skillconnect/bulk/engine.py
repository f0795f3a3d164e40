"""
Bulk operation engine.

Accepts job requests, validates them, persists an operation record and
hands the job to the worker. ``run`` then processes the job item by item,
recording every outcome and advancing progress in the same commit, and
finally moves the record to exactly one terminal status.

Effects already applied by earlier items are kept when a job fails later;
jobs are not transactional across items.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import pydantic
from sqlalchemy.orm import Session, sessionmaker

from skillconnect import audit
from skillconnect.audit import AuditAction, AuditStatus
from skillconnect.bulk.config import BulkOperationsConfig
from skillconnect.bulk.jobs import JOB_CLASSES, BulkJob, ExportJob, JobContext
from skillconnect.bulk.outcomes import ItemFailure, ItemSuccess
from skillconnect.bulk.requests import PARAMETER_MODELS, ImportParameters
from skillconnect.bulk.worker import BulkOperationWorker
from skillconnect.db import models, schemas
from skillconnect.db.repositories import bulk_ops as bulk_ops_repo
from skillconnect.errors import InvalidStateError, JobFatalError, NotFoundError, ValidationError
from skillconnect.services.notification_sink import NotificationSink

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class ExportArtifact:
    """A completed export file ready to be streamed to the caller."""

    operation_id: str
    path: Path

    @property
    def filename(self) -> str:
        return f"users_export_{self.operation_id}.csv"


class BulkOperationEngine:
    def __init__(
        self,
        session_factory: sessionmaker,
        sink: NotificationSink,
        config: Optional[BulkOperationsConfig] = None,
        worker: Optional[BulkOperationWorker] = None,
    ):
        self.session_factory = session_factory
        self.sink = sink
        self.config = config or BulkOperationsConfig()
        self.worker = worker or BulkOperationWorker()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # ------------------------------------------------------------ submission

    def validate_parameters(self, job_type: str, parameters: Dict[str, Any]) -> pydantic.BaseModel:
        model = PARAMETER_MODELS.get(job_type)
        if model is None:
            raise ValidationError(
                f"Unknown bulk operation type: {job_type}",
                errors=[{"loc": ["type"], "msg": f"must be one of {', '.join(PARAMETER_MODELS)}"}],
            )
        try:
            params = model.model_validate(parameters or {})
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid {job_type} request",
                errors=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e
        if isinstance(params, ImportParameters) and len(params.content) > self.config.max_upload_bytes:
            raise ValidationError(
                "Uploaded file is too large",
                errors=[{"loc": ["file"], "msg": f"must be at most {self.config.max_upload_bytes} bytes"}],
            )
        return params

    def _store_upload(self, params: ImportParameters) -> str:
        upload_dir = Path(self.config.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", Path(params.file_name).name)
        path = upload_dir / f"{int(time.time() * 1000)}-{safe_name}"
        path.write_bytes(params.content)
        return str(path)

    async def submit(self, job_type: str, parameters: Dict[str, Any], initiator: Optional[str]) -> str:
        """Validate, persist a pending record, schedule the job; returns the operation id.

        Raises ValidationError before anything is persisted.
        """
        params = self.validate_parameters(job_type, parameters)
        input_file = self._store_upload(params) if isinstance(params, ImportParameters) else None

        with self._session() as db:
            operation = bulk_ops_repo.create_bulk_operation(
                db,
                schemas.BulkOperationCreate(type=job_type, parameters=params.stored(), input_file=input_file),
                initiated_by=initiator,
            )
            operation_id = operation.operation_id
            audit.log_bulk_operation(
                db,
                actor_user_id=initiator,
                operation_id=operation_id,
                action=AuditAction.BULK_OPERATION_START,
                metadata={"type": job_type, "parameters": operation.parameters},
            )

        logger.info("bulk_operation_submitted operation_id=%s type=%s initiator=%s", operation_id, job_type, initiator)
        self.worker.submit(operation_id, lambda: self.run(operation_id))
        return operation_id

    # ------------------------------------------------------------ execution

    async def run(self, operation_id: str) -> Dict[str, Any]:
        """Process a job to a terminal status; invoked by the worker."""
        with self._session() as db:
            operation = bulk_ops_repo.get_bulk_operation(db, operation_id)
            if operation is None:
                logger.error("bulk_operation_missing operation_id=%s", operation_id)
                return {"status": bulk_ops_repo.STATUS_FAILED, "error": "Operation not found"}
            if bulk_ops_repo.is_terminal(operation):
                return {"status": operation.status, **operation.progress}

            if self.worker.cancel_requested(operation_id) or operation.cancel_requested:
                operation = self._cancel(db, operation)
                return {"status": operation.status, **operation.progress}

            try:
                operation = bulk_ops_repo.mark_processing(db, operation)
                logger.info("bulk_operation_started operation_id=%s type=%s", operation_id, operation.type)
                job = self._build_job(db, operation)
                if job.per_item:
                    operation = await self._run_items(db, operation, job)
                else:
                    operation = self._run_export(db, operation, job)
            except Exception as e:
                db.rollback()
                if isinstance(e, JobFatalError):
                    logger.error("bulk_operation_failed operation_id=%s error=%s", operation_id, e)
                else:
                    logger.exception("bulk_operation_failed operation_id=%s", operation_id)
                operation = bulk_ops_repo.get_bulk_operation(db, operation_id)
                if operation is None:
                    return {"status": bulk_ops_repo.STATUS_FAILED, "error": str(e)}
                if not bulk_ops_repo.is_terminal(operation):
                    operation = bulk_ops_repo.fail_bulk_operation(db, operation, str(e) or e.__class__.__name__)

            if operation.status != bulk_ops_repo.STATUS_CANCELLED:
                audit.log_bulk_operation(
                    db,
                    actor_user_id=operation.initiated_by,
                    operation_id=operation_id,
                    action=AuditAction.BULK_OPERATION_COMPLETE,
                    status=AuditStatus.SUCCESS if operation.status == bulk_ops_repo.STATUS_COMPLETED else AuditStatus.FAILURE,
                    metadata={"type": operation.type, "summary": (operation.results or {}).get("summary", {})},
                )
            progress = operation.progress
            logger.info(
                "bulk_operation_finished operation_id=%s status=%s processed=%d successful=%d failed=%d",
                operation_id, operation.status, progress["processed"], progress["successful"], progress["failed"],
            )
            return {"status": operation.status, **progress}

    def _build_job(self, db: Session, operation: models.BulkOperation) -> BulkJob:
        job_class = JOB_CLASSES.get(operation.type)
        if job_class is None:
            raise JobFatalError(f"Unknown bulk operation type: {operation.type}")
        ctx = JobContext(db=db, operation=operation, config=self.config, sink=self.sink)
        return job_class(ctx)

    async def _run_items(self, db: Session, operation: models.BulkOperation, job: BulkJob) -> models.BulkOperation:
        items = job.load_items()
        bulk_ops_repo.set_total(db, operation, len(items))

        for index, item in enumerate(items):
            # Let cancel requests and sibling jobs in between items
            await asyncio.sleep(0)
            if self._stop_requested(db, operation):
                if bulk_ops_repo.is_terminal(operation):
                    return operation
                return self._cancel(db, operation)

            position = job.item_index(index)

            try:
                outcome = await job.process_item(index, item)
            except JobFatalError:
                raise
            except Exception as e:
                db.rollback()
                logger.warning(
                    "bulk_item_error operation_id=%s index=%d error=%s", operation.operation_id, index, e,
                )
                outcome = ItemFailure(item=job.describe_item(item), error=str(e) or e.__class__.__name__,
                                      line_number=job.line_number(index))

            if isinstance(outcome, ItemSuccess):
                bulk_ops_repo.record_item_success(db, operation, outcome.item, index=position)
            else:
                logger.debug(
                    "bulk_item_failed operation_id=%s index=%d error=%s", operation.operation_id, index, outcome.error,
                )
                bulk_ops_repo.record_item_failure(
                    db, operation, outcome.item, outcome.error, line_number=outcome.line_number, index=position,
                )

        return bulk_ops_repo.complete_bulk_operation(db, operation, job.summary(operation.progress))

    def _stop_requested(self, db: Session, operation: models.BulkOperation) -> bool:
        if self.worker.cancel_requested(operation.operation_id):
            return True
        # A cancel from another process only shows up in the stored record
        db.refresh(operation)
        return operation.cancel_requested or bulk_ops_repo.is_terminal(operation)

    def _run_export(self, db: Session, operation: models.BulkOperation, job: ExportJob) -> models.BulkOperation:
        documents = job.query_documents()
        path, summary = job.write(documents)
        bulk_ops_repo.record_bulk_progress(db, operation, summary["totalExported"])
        return bulk_ops_repo.complete_bulk_operation(db, operation, summary, output_file=str(path))

    def _cancel(self, db: Session, operation: models.BulkOperation) -> models.BulkOperation:
        operation = bulk_ops_repo.cancel_bulk_operation(db, operation)
        audit.log_bulk_operation(
            db,
            actor_user_id=operation.initiated_by,
            operation_id=operation.operation_id,
            action=AuditAction.BULK_OPERATION_CANCEL,
            metadata={"summary": (operation.results or {}).get("summary", {})},
        )
        logger.info("bulk_operation_cancelled operation_id=%s", operation.operation_id)
        return operation

    # ------------------------------------------------------------ queries

    def get_status(self, operation_id: str) -> schemas.BulkOperation:
        with self._session() as db:
            operation = bulk_ops_repo.get_bulk_operation(db, operation_id)
            if operation is None:
                raise NotFoundError(f"Operation {operation_id} not found")
            return schemas.BulkOperation.model_validate(operation)

    def list_operations(
        self,
        skip: int = 0,
        limit: int = 50,
        initiator: Optional[str] = None,
        status: Optional[str] = None,
    ) -> schemas.BulkOperationList:
        with self._session() as db:
            operations = bulk_ops_repo.get_bulk_operations(db, initiated_by=initiator, status=status, skip=skip, limit=limit)
            total = bulk_ops_repo.count_bulk_operations(db, initiated_by=initiator, status=status)
            return schemas.BulkOperationList(
                operations=[schemas.BulkOperation.model_validate(op) for op in operations],
                total=total,
                skip=skip,
                limit=limit,
            )

    def download(self, operation_id: str) -> ExportArtifact:
        with self._session() as db:
            operation = bulk_ops_repo.get_bulk_operation(db, operation_id)
            if operation is None:
                raise NotFoundError(f"Operation {operation_id} not found")
            if operation.type != "export":
                raise InvalidStateError("Only export operations have a downloadable file")
            if operation.status != bulk_ops_repo.STATUS_COMPLETED:
                raise InvalidStateError(f"Export is {operation.status}, not completed")
            if not operation.output_file or not Path(operation.output_file).is_file():
                raise InvalidStateError("Export file is no longer available")
            return ExportArtifact(operation_id=operation_id, path=Path(operation.output_file))

    def cancel(self, operation_id: str) -> schemas.BulkOperation:
        """Cancel a job; running jobs stop before their next item."""
        with self._session() as db:
            operation = bulk_ops_repo.get_bulk_operation(db, operation_id)
            if operation is None:
                raise NotFoundError(f"Operation {operation_id} not found")
            if bulk_ops_repo.is_terminal(operation):
                raise InvalidStateError(f"Operation {operation_id} is already {operation.status}")

            if not self.worker.request_cancel(operation_id):
                if operation.status == bulk_ops_repo.STATUS_PROCESSING:
                    # Running in another process, which stops before its next item
                    operation = bulk_ops_repo.request_cancel(db, operation)
                else:
                    operation = self._cancel(db, operation)
            return schemas.BulkOperation.model_validate(operation)

    async def wait(self, operation_id: str) -> Optional[Dict[str, Any]]:
        return await self.worker.wait(operation_id)

    async def shutdown(self) -> None:
        await self.worker.shutdown()


def build_bulk_engine() -> BulkOperationEngine:
    """Engine wired to the application's session factory, sink and config."""
    from skillconnect.db import database
    from skillconnect.services import build_notification_sink

    return BulkOperationEngine(
        session_factory=database.SessionLocal,
        sink=build_notification_sink(),
        config=BulkOperationsConfig(),
    )
