"""Reporting endpoints for advisor performance and booking conversion."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from service_center.core.auth import RequestUserContext, get_current_user_context
from service_center.db.dependencies import get_db_session
from service_center.services.performance_service import PerformanceService

router = APIRouter(tags=["reports"])


def _service(db: Session) -> PerformanceService:
    return PerformanceService(db)


@router.get("/reports/showrooms/{showroom_id}/advisor-performance")
def report_advisor_performance(
    showroom_id: UUID,
    month: date | None = None,
    as_of: date | None = None,
    group_by: str = Query(default="name"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).advisor_performance(
        context=context,
        showroom_id=showroom_id,
        month_start=month,
        as_of=as_of,
        group_by=group_by,
    )


@router.get("/reports/showrooms/{showroom_id}/booking-conversion")
def report_booking_conversion(
    showroom_id: UUID,
    as_of: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).booking_conversion(context=context, showroom_id=showroom_id, as_of=as_of)


@router.post("/showrooms/{showroom_id}/advisor-links/reconcile")
def reconcile_advisor_links(
    showroom_id: UUID,
    apply: bool = False,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Propose advisor ids for unlinked rows; writes them only when ``apply`` is set."""

    return _service(db).reconcile_advisor_links(context=context, showroom_id=showroom_id, apply=apply)
