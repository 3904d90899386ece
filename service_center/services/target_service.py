"""City targets and per-advisor target distribution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from service_center.core.auth import (
    CITY_TARGET_ROLES,
    DISTRIBUTE_ROLES,
    VIEW_ROLES,
    RequestUserContext,
    ensure_showroom_access,
    ensure_showroom_exists,
)
from service_center.models.entities import AdvisorTarget, CityTarget, DistributionMode, UploadType
from service_center.repositories.showroom_repository import ShowroomRepository
from service_center.services.advisor_aggregation import aggregate_by_advisor, unique_advisor_names
from service_center.services.advisor_linking import map_advisor_names
from service_center.services.target_distribution import (
    TARGET_FIELDS,
    AdvisorShare,
    TargetMetrics,
    UnknownAdvisorError,
    distribute_evenly,
    manual_distribution,
)

logger = logging.getLogger(__name__)


def normalize_month_start(value: date) -> date:
    if value.day != 1:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="month must be first day of calendar month.",
        )
    return date(value.year, value.month, 1)


def current_month_start(today: date | None = None) -> date:
    reference = today or date.today()
    return date(reference.year, reference.month, 1)


@dataclass(slots=True)
class DistributionRequest:
    month_start: date
    mode: DistributionMode
    entries: dict[str, TargetMetrics]


class TargetService:
    """City targets and advisor distributions stored per showroom and month."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ShowroomRepository(db)

    def _ensure_access(self, context: RequestUserContext, showroom_id: UUID, allowed_roles) -> None:
        ensure_showroom_exists(self.db, showroom_id)
        ensure_showroom_access(context, showroom_id, allowed_roles)

    @staticmethod
    def serialize_city_target(target: CityTarget) -> dict[str, object]:
        return {
            "id": str(target.id),
            "showroom_id": str(target.showroom_id),
            "month_start": target.month_start.isoformat(),
            **TargetMetrics.from_row(target).as_dict(),
            "updated_at": target.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_advisor_target(target: AdvisorTarget) -> dict[str, object]:
        return {
            "id": str(target.id),
            "advisor_name": target.advisor_name,
            "advisor_id": str(target.advisor_id) if target.advisor_id else None,
            "mode": target.mode.value,
            "month_start": target.month_start.isoformat(),
            **TargetMetrics.from_row(target).as_dict(),
        }

    # ---------- City target ----------
    def get_city_target(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        month_start: date,
    ) -> CityTarget | None:
        self._ensure_access(context, showroom_id, VIEW_ROLES)
        return self.repo.get_city_target(showroom_id, normalize_month_start(month_start))

    def set_city_target(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        month_start: date,
        metrics: TargetMetrics,
    ) -> CityTarget:
        self._ensure_access(context, showroom_id, CITY_TARGET_ROLES)
        month = normalize_month_start(month_start)
        if any(getattr(metrics, name) < 0 for name in TARGET_FIELDS):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Target values must be non-negative.",
            )

        now = datetime.utcnow()
        target = self.repo.get_city_target(showroom_id, month)
        if target is None:
            target = CityTarget(
                showroom_id=showroom_id,
                month_start=month,
                created_by_id=context.user_id,
                created_at=now,
            )
            self.repo.add_city_target(target)
        for name in TARGET_FIELDS:
            setattr(target, name, getattr(metrics, name))
        target.updated_at = now

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="City target for this month was saved concurrently.",
            ) from exc

        self.db.refresh(target)
        return target

    # ---------- Advisor distribution ----------
    def _advisor_names(self, showroom_id: UUID) -> list[str]:
        # Rows of one upload share created_at, so order by name instead.
        names = unique_advisor_names(self.repo.list_records(UploadType.RO_BILLING, showroom_id))
        return sorted(names, key=str.lower)

    def _distribute(self, showroom_id: UUID, request: DistributionRequest) -> list[AdvisorShare]:
        advisors = self._advisor_names(showroom_id)
        if request.mode == DistributionMode.AUTOMATIC:
            city_target = self.repo.get_city_target(showroom_id, request.month_start)
            if city_target is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="City target is not set for this month.",
                )
            return distribute_evenly(TargetMetrics.from_row(city_target), advisors)

        try:
            return manual_distribution(request.entries, advisors)
        except UnknownAdvisorError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc

    def preview_distribution(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        request: DistributionRequest,
    ) -> dict[str, object]:
        self._ensure_access(context, showroom_id, DISTRIBUTE_ROLES)
        request.month_start = normalize_month_start(request.month_start)
        shares = self._distribute(showroom_id, request)
        achieved = aggregate_by_advisor(self.repo.list_records(UploadType.RO_BILLING, showroom_id))

        return {
            "showroom_id": str(showroom_id),
            "month_start": request.month_start.isoformat(),
            "mode": request.mode.value,
            "advisor_count": len(self._advisor_names(showroom_id)),
            "rows": [
                {
                    "advisor_name": share.advisor_name,
                    "target": share.metrics.as_dict(),
                    "achieved": achieved[share.advisor_name].as_dict() if share.advisor_name in achieved else None,
                }
                for share in shares
            ],
        }

    def save_distribution(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        request: DistributionRequest,
    ) -> list[AdvisorTarget]:
        self._ensure_access(context, showroom_id, DISTRIBUTE_ROLES)
        month = normalize_month_start(request.month_start)
        request.month_start = month
        shares = self._distribute(showroom_id, request)

        users = self.repo.list_showroom_users(showroom_id)
        linked = map_advisor_names((share.advisor_name for share in shares), users)
        now = datetime.utcnow()
        rows = [
            AdvisorTarget(
                showroom_id=showroom_id,
                month_start=month,
                advisor_name=share.advisor_name,
                advisor_id=linked[share.advisor_name].id if share.advisor_name in linked else None,
                mode=request.mode,
                created_by_id=context.user_id,
                created_at=now,
                **{name: getattr(share.metrics, name) for name in TARGET_FIELDS},
            )
            for share in shares
        ]
        self.repo.replace_advisor_targets(showroom_id, month, rows)
        self.db.commit()
        logger.info(
            "Saved %s %s advisor targets for showroom %s month %s",
            len(rows),
            request.mode.value,
            showroom_id,
            month.isoformat(),
        )
        return self.repo.list_advisor_targets(showroom_id, month)

    def list_advisor_targets(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        month_start: date,
    ) -> list[AdvisorTarget]:
        self._ensure_access(context, showroom_id, VIEW_ROLES)
        return self.repo.list_advisor_targets(showroom_id, normalize_month_start(month_start))
