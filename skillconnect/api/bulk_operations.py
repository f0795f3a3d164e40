"""
Bulk operations API endpoints.

Submits import, export, update, delete and email jobs to the bulk engine and
exposes their operation records. Submission returns as soon as the record
exists; the job runs in the background.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from starlette.responses import FileResponse

from skillconnect.api.deps import get_bulk_engine, require_admin
from skillconnect.bulk.engine import BulkOperationEngine
from skillconnect.db import schemas

router = APIRouter(prefix="/bulk", tags=["bulk-operations"])


async def _submit(engine: BulkOperationEngine, job_type: str, payload: Optional[Dict[str, Any]], user) -> schemas.BulkOperationSubmitted:
    operation_id = await engine.submit(job_type, payload or {}, initiator=user.id)
    return schemas.BulkOperationSubmitted(operation_id=operation_id)


@router.post("/import", response_model=schemas.BulkOperationSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def import_users(
    file: UploadFile = File(...),
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    # One byte past the limit is enough to reject the upload
    content = await file.read(engine.config.max_upload_bytes + 1)
    payload = {
        "fileName": file.filename or "",
        "content": content,
        "contentType": file.content_type,
    }
    return await _submit(engine, "import", payload, user)


@router.post("/export", response_model=schemas.BulkOperationSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def export_users(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    return await _submit(engine, "export", payload, user)


@router.put("/update", response_model=schemas.BulkOperationSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def bulk_update_users(
    payload: Dict[str, Any] = Body(...),
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    return await _submit(engine, "bulk_update", payload, user)


@router.post("/delete", response_model=schemas.BulkOperationSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def bulk_delete_users(
    payload: Dict[str, Any] = Body(...),
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    return await _submit(engine, "bulk_delete", payload, user)


@router.post("/email", response_model=schemas.BulkOperationSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def bulk_email_users(
    payload: Dict[str, Any] = Body(...),
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    return await _submit(engine, "bulk_email", payload, user)


@router.get("/operations", response_model=schemas.BulkOperationList)
def list_bulk_operations(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    mine: bool = False,
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    user, _ctx = user_context
    return engine.list_operations(
        skip=skip,
        limit=limit,
        initiator=user.id if mine else None,
        status=status_filter,
    )


@router.get("/operations/{operation_id}", response_model=schemas.BulkOperation)
def get_bulk_operation_status(
    operation_id: str,
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    return engine.get_status(operation_id)


@router.post("/operations/{operation_id}/cancel", response_model=schemas.BulkOperation)
async def cancel_bulk_operation(
    operation_id: str,
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    # Runs on the event loop so the flag is seen by the job task
    return engine.cancel(operation_id)


@router.get("/download/{operation_id}")
def download_export(
    operation_id: str,
    engine: BulkOperationEngine = Depends(get_bulk_engine),
    user_context=Depends(require_admin),
):
    artifact = engine.download(operation_id)
    return FileResponse(artifact.path, media_type="text/csv", filename=artifact.filename)
