"""Spreadsheet upload, upload history and raw record endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from service_center.core.auth import RequestUserContext, get_current_user_context
from service_center.db.dependencies import get_db_session
from service_center.services.ingestion_service import IngestionService, parse_upload_type

router = APIRouter(tags=["uploads"])


def _service(db: Session) -> IngestionService:
    return IngestionService(db)


@router.post("/showrooms/{showroom_id}/uploads", status_code=status.HTTP_201_CREATED)
def upload_file(
    showroom_id: UUID,
    upload_type: str = Form(...),
    file: UploadFile = File(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    content = file.file.read()
    service = _service(db)
    result = service.upload(
        context=context,
        showroom_id=showroom_id,
        upload_type=parse_upload_type(upload_type),
        filename=file.filename or "upload",
        content=content,
    )
    return {
        **service.serialize_upload(result.uploaded_file),
        "upload_case": result.upload_case,
        "inserted_count": result.inserted_count,
        "updated_count": result.updated_count,
    }


@router.get("/showrooms/{showroom_id}/uploads")
def list_uploads(
    showroom_id: UUID,
    upload_type: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    uploads = service.list_uploads(
        context=context,
        showroom_id=showroom_id,
        file_type=parse_upload_type(upload_type) if upload_type else None,
        limit=limit,
    )
    return {"items": [service.serialize_upload(item) for item in uploads]}


@router.get("/showrooms/{showroom_id}/uploads/stats")
def upload_stats(
    showroom_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).upload_stats(context=context, showroom_id=showroom_id)


@router.delete("/uploads/{file_id}")
def delete_upload(
    file_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).delete_upload(context=context, file_id=file_id)


@router.get("/showrooms/{showroom_id}/records/{data_type}")
def list_records(
    showroom_id: UUID,
    data_type: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    rows = _service(db).list_records(context=context, showroom_id=showroom_id, data_type=data_type)
    return {"data": rows}
