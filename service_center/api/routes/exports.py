"""Export endpoint for advisor performance."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from service_center.core.auth import RequestUserContext, get_current_user_context
from service_center.db.dependencies import get_db_session
from service_center.services.performance_service import PerformanceService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/showrooms/{showroom_id}/advisor-performance")
def export_advisor_performance(
    showroom_id: UUID,
    format: str = Query(default="xlsx"),
    month: date | None = None,
    as_of: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = PerformanceService(db).export_advisor_performance(
        context=context,
        showroom_id=showroom_id,
        month_start=month,
        as_of=as_of,
        format_name=format,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
