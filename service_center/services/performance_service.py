"""Advisor performance reporting, booking conversion, dashboards and exports."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from io import BytesIO
from uuid import UUID

from fastapi import HTTPException, status
from openpyxl import Workbook
from sqlalchemy.orm import Session

from service_center.core.auth import (
    ADMIN_ROLES,
    VIEW_ROLES,
    RequestUserContext,
    ensure_showroom_access,
    ensure_showroom_exists,
    has_showroom_access,
)
from service_center.models.entities import Showroom, UploadType
from service_center.repositories.showroom_repository import ShowroomRepository
from service_center.services.advisor_aggregation import (
    AdvisorTotals,
    advisor_name_key,
    aggregate_by_advisor,
    linked_advisor_key,
)
from service_center.services.advisor_linking import suggest_advisor
from service_center.services.pace import compute_pace, remaining_working_days
from service_center.services.record_normalizer import ZERO
from service_center.services.target_distribution import TargetMetrics
from service_center.services.target_service import current_month_start, normalize_month_start
from service_center.services.vin_matching import match_bookings, summarize_matches

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")

# Target field -> achieved totals attribute.
METRIC_SOURCES: dict[str, str] = {
    "labour": "labour_amount",
    "parts": "part_amount",
    "total_vehicles": "vehicle_count",
    "paid_service": "paid_service_count",
    "free_service": "free_service_count",
    "rr": "running_repair_count",
}

GROUP_BY_OPTIONS = {"name", "advisor_id"}
RECONCILE_TYPES = (UploadType.BOOKING_LIST, UploadType.RO_BILLING, UploadType.REPAIR_ORDER_LIST)


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


class PerformanceService:
    """Read-side aggregation over a showroom's uploaded records."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ShowroomRepository(db)

    def _ensure_access(self, context: RequestUserContext, showroom_id: UUID, allowed_roles) -> Showroom:
        showroom = ensure_showroom_exists(self.db, showroom_id)
        ensure_showroom_access(context, showroom_id, allowed_roles)
        return showroom

    def _own_records_filter(self, context: RequestUserContext, showroom_id: UUID) -> UUID | None:
        if context.sees_only_own_bookings(showroom_id):
            return context.user_id
        return None

    # ---------- Advisor performance ----------
    def advisor_performance(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        month_start: date | None,
        as_of: date | None,
        group_by: str = "name",
    ) -> dict[str, object]:
        showroom = self._ensure_access(context, showroom_id, VIEW_ROLES)
        normalized_group = group_by.strip().lower()
        if normalized_group not in GROUP_BY_OPTIONS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="group_by must be one of: advisor_id, name.",
            )

        today = as_of or date.today()
        month = normalize_month_start(month_start) if month_start else current_month_start(today)
        remaining_days = remaining_working_days(today)

        billing = self.repo.list_records(
            UploadType.RO_BILLING,
            showroom_id,
            advisor_id=self._own_records_filter(context, showroom_id),
        )
        key = linked_advisor_key if normalized_group == "advisor_id" else advisor_name_key
        achieved = aggregate_by_advisor(billing, key=key)

        display_names: dict[str, str] = {}
        for record in billing:
            display_names.setdefault(key(record), advisor_name_key(record))

        targets: dict[str, TargetMetrics] = {}
        for row in self.repo.list_advisor_targets(showroom_id, month):
            if normalized_group == "advisor_id" and row.advisor_id is not None:
                target_key = str(row.advisor_id)
            else:
                target_key = row.advisor_name
            targets[target_key] = TargetMetrics.from_row(row)
            display_names.setdefault(target_key, row.advisor_name)

        if self._own_records_filter(context, showroom_id) is not None:
            visible = set(achieved) | {str(context.user_id), context.display_name}
            targets = {name: value for name, value in targets.items() if name in visible}

        rows = []
        for advisor_key in sorted(set(achieved) | set(targets), key=lambda item: display_names.get(item, item).lower()):
            totals = achieved.get(advisor_key, AdvisorTotals())
            target = targets.get(advisor_key, TargetMetrics())
            metrics = {
                field: compute_pace(getattr(target, field), getattr(totals, source), remaining_days).as_dict()
                for field, source in METRIC_SOURCES.items()
            }
            rows.append(
                {
                    "advisor_key": advisor_key,
                    "advisor_name": display_names.get(advisor_key, advisor_key),
                    "has_target": advisor_key in targets,
                    "achieved": totals.as_dict(),
                    "metrics": metrics,
                }
            )

        return {
            "showroom_id": str(showroom_id),
            "city": showroom.city,
            "month_start": month.isoformat(),
            "as_of": today.isoformat(),
            "group_by": normalized_group,
            "remaining_working_days": remaining_days,
            "rows": rows,
        }

    # ---------- Booking conversion ----------
    def booking_conversion(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        as_of: date | None,
    ) -> dict[str, object]:
        showroom = self._ensure_access(context, showroom_id, VIEW_ROLES)
        bookings = self.repo.list_records(
            UploadType.BOOKING_LIST,
            showroom_id,
            advisor_id=self._own_records_filter(context, showroom_id),
        )
        billing = [
            *self.repo.list_records(UploadType.RO_BILLING, showroom_id),
            *self.repo.list_records(UploadType.REPAIR_ORDER_LIST, showroom_id),
        ]
        payload = match_bookings(bookings, billing, today=as_of or date.today())
        return {"showroom_id": str(showroom_id), "city": showroom.city, **payload}

    # ---------- Advisor id backfill ----------
    def reconcile_advisor_links(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        apply: bool,
    ) -> dict[str, object]:
        self._ensure_access(context, showroom_id, ADMIN_ROLES)
        users = self.repo.list_showroom_users(showroom_id)

        proposals: list[dict[str, object]] = []
        skipped = 0
        for upload_type in RECONCILE_TYPES:
            for record in self.repo.list_records(upload_type, showroom_id):
                if record.advisor_id is not None or not (record.service_advisor or "").strip():
                    continue
                user = suggest_advisor(record.service_advisor, users)
                if user is None:
                    skipped += 1
                    continue
                proposals.append(
                    {
                        "record_type": upload_type.value,
                        "record_id": str(record.id),
                        "advisor_name": record.service_advisor,
                        "user_id": str(user.id),
                        "user_name": user.display_name,
                    }
                )
                if apply:
                    record.advisor_id = user.id

        if apply:
            self.db.commit()
        logger.info(
            "Advisor link reconciliation for showroom %s: matched=%s skipped=%s applied=%s",
            showroom_id,
            len(proposals),
            skipped,
            apply,
        )
        return {
            "showroom_id": str(showroom_id),
            "applied": apply,
            "matched": len(proposals),
            "skipped": skipped,
            "proposals": proposals,
        }

    # ---------- Dashboards ----------
    def _showroom_summary(self, showroom: Showroom) -> dict[str, object]:
        billing = self.repo.list_records(UploadType.RO_BILLING, showroom.id)
        repair_orders = self.repo.list_records(UploadType.REPAIR_ORDER_LIST, showroom.id)
        bookings = self.repo.list_records(UploadType.BOOKING_LIST, showroom.id)
        warranty = self.repo.list_records(UploadType.WARRANTY, showroom.id)
        operations = self.repo.list_records(UploadType.OPERATIONS_PART, showroom.id)

        labour = sum((row.labour_amount for row in billing), ZERO)
        parts = sum((row.part_amount for row in billing), ZERO)
        revenue = sum((row.total_amount for row in billing), ZERO)
        warranty_amount = sum((row.labour_amount + row.part_amount for row in warranty), ZERO)
        operations_amount = sum((row.amount for row in operations), ZERO)

        return {
            "showroom_id": str(showroom.id),
            "code": showroom.code,
            "name": showroom.name,
            "city": showroom.city,
            "ro_billing": {
                "count": len(billing),
                "labour_amount": str(_q2(labour)),
                "part_amount": str(_q2(parts)),
                "total_amount": str(_q2(revenue)),
                "advisor_count": len({advisor_name_key(row) for row in billing}),
            },
            "warranty": {"count": len(warranty), "claim_amount": str(_q2(warranty_amount))},
            "operations": {"count": len(operations), "amount": str(_q2(operations_amount))},
            "repair_order_list": {"count": len(repair_orders)},
            "booking_list": {
                "count": len(bookings),
                **summarize_matches(bookings, [*billing, *repair_orders]),
            },
        }

    def showroom_dashboard(self, *, context: RequestUserContext, showroom_id: UUID) -> dict[str, object]:
        showroom = self._ensure_access(context, showroom_id, VIEW_ROLES)
        return self._showroom_summary(showroom)

    def overview(self, *, context: RequestUserContext) -> dict[str, object]:
        if context.is_owner:
            showrooms = self.repo.list_showrooms()
        else:
            showrooms = [
                showroom
                for showroom in self.repo.list_showrooms(context.showroom_ids)
                if has_showroom_access(context, showroom_id=showroom.id, allowed_roles=ADMIN_ROLES)
            ]

        by_city: dict[str, list[dict[str, object]]] = {}
        for showroom in showrooms:
            by_city.setdefault(showroom.city, []).append(self._showroom_summary(showroom))
        return {"showroom_count": len(showrooms), "cities": by_city}

    # ---------- Exports ----------
    @staticmethod
    def _flatten_performance_rows(report_payload: dict[str, object]) -> list[dict[str, str]]:
        flat_rows: list[dict[str, str]] = []
        rows = report_payload.get("rows")
        if not isinstance(rows, list):
            return flat_rows

        for row in rows:
            record = {"advisor_name": str(row["advisor_name"])}
            for field, values in row["metrics"].items():
                for part in ("target", "achieved", "shortfall", "per_day_required", "achievement_percent"):
                    value = values.get(part)
                    record[f"{field}_{part}"] = "" if value is None else str(value)
            flat_rows.append(record)
        return flat_rows

    def export_advisor_performance(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        month_start: date | None,
        as_of: date | None,
        format_name: str,
    ) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        report_payload = self.advisor_performance(
            context=context,
            showroom_id=showroom_id,
            month_start=month_start,
            as_of=as_of,
        )
        flattened = self._flatten_performance_rows(report_payload)
        fieldnames = ["advisor_name"] + [
            f"{field}_{part}"
            for field in METRIC_SOURCES
            for part in ("target", "achieved", "shortfall", "per_day_required", "achievement_percent")
        ]
        base_filename = f"advisor-performance-{showroom_id}-{report_payload['month_start']}"

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(flattened)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "advisor-performance"
        sheet.append(fieldnames)
        for row in flattened:
            sheet.append([row.get(column, "") for column in fieldnames])

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
