"""City target and advisor target distribution endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from service_center.core.auth import RequestUserContext, get_current_user_context
from service_center.db.dependencies import get_db_session
from service_center.models.entities import DistributionMode
from service_center.services.target_distribution import TargetMetrics
from service_center.services.target_service import DistributionRequest, TargetService, current_month_start

router = APIRouter(prefix="/showrooms/{showroom_id}/targets", tags=["targets"])


class TargetValues(BaseModel):
    labour: Decimal = Field(default=Decimal("0"), ge=0)
    parts: Decimal = Field(default=Decimal("0"), ge=0)
    total_vehicles: int = Field(default=0, ge=0)
    paid_service: int = Field(default=0, ge=0)
    free_service: int = Field(default=0, ge=0)
    rr: int = Field(default=0, ge=0)

    def to_metrics(self) -> TargetMetrics:
        return TargetMetrics(
            labour=self.labour.quantize(Decimal("0.01")),
            parts=self.parts.quantize(Decimal("0.01")),
            total_vehicles=self.total_vehicles,
            paid_service=self.paid_service,
            free_service=self.free_service,
            rr=self.rr,
        )


class ManualTargetEntry(TargetValues):
    advisor_name: str = Field(min_length=1, max_length=255)


class DistributionPayload(BaseModel):
    month: date | None = None
    mode: DistributionMode = DistributionMode.AUTOMATIC
    entries: list[ManualTargetEntry] = Field(default_factory=list)

    def to_request(self) -> DistributionRequest:
        return DistributionRequest(
            month_start=self.month or current_month_start(),
            mode=self.mode,
            entries={entry.advisor_name.strip(): entry.to_metrics() for entry in self.entries},
        )


def _service(db: Session) -> TargetService:
    return TargetService(db)


@router.get("/city")
def get_city_target(
    showroom_id: UUID,
    month: date | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    month_start = month or current_month_start()
    target = service.get_city_target(context=context, showroom_id=showroom_id, month_start=month_start)
    if target is None:
        return {
            "showroom_id": str(showroom_id),
            "month_start": month_start.isoformat(),
            **TargetMetrics().as_dict(),
            "is_set": False,
        }
    return {**service.serialize_city_target(target), "is_set": True}


@router.put("/city")
def set_city_target(
    showroom_id: UUID,
    payload: TargetValues,
    month: date | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target = service.set_city_target(
        context=context,
        showroom_id=showroom_id,
        month_start=month or current_month_start(),
        metrics=payload.to_metrics(),
    )
    return {**service.serialize_city_target(target), "is_set": True}


@router.post("/advisors/preview")
def preview_advisor_targets(
    showroom_id: UUID,
    payload: DistributionPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).preview_distribution(
        context=context,
        showroom_id=showroom_id,
        request=payload.to_request(),
    )


@router.put("/advisors")
def save_advisor_targets(
    showroom_id: UUID,
    payload: DistributionPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.save_distribution(context=context, showroom_id=showroom_id, request=payload.to_request())
    return {"items": [service.serialize_advisor_target(row) for row in rows]}


@router.get("/advisors")
def list_advisor_targets(
    showroom_id: UUID,
    month: date | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_advisor_targets(
        context=context,
        showroom_id=showroom_id,
        month_start=month or current_month_start(),
    )
    return {"items": [service.serialize_advisor_target(row) for row in rows]}
