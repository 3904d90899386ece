"""Dashboard endpoints for showroom and city overviews."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from service_center.core.auth import AppRole, RequestUserContext, get_current_user_context, require_roles
from service_center.db.dependencies import get_db_session
from service_center.services.performance_service import PerformanceService

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> PerformanceService:
    return PerformanceService(db)


@router.get("/showrooms/{showroom_id}")
def get_showroom_dashboard(
    showroom_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).showroom_dashboard(context=context, showroom_id=showroom_id)


@router.get("/overview")
def get_overview_dashboard(
    context: RequestUserContext = Depends(require_roles(AppRole.OWNER, AppRole.GENERAL_MANAGER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).overview(context=context)
