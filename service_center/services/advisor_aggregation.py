"""Per-advisor totals over billing and booking records."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from service_center.services.record_normalizer import ZERO, coerce_amount

UNKNOWN_ADVISOR = "Unknown"

PAID_MARKERS = ("paid",)
FREE_MARKERS = ("free",)
RUNNING_REPAIR_MARKERS = ("r&r", "r and r", "running repair", "rr", "running")


@dataclass(slots=True)
class AdvisorTotals:
    labour_amount: Decimal = field(default=ZERO)
    part_amount: Decimal = field(default=ZERO)
    vehicle_count: int = 0
    paid_service_count: int = 0
    free_service_count: int = 0
    running_repair_count: int = 0

    def as_dict(self) -> dict[str, object]:
        return {
            "labour_amount": str(self.labour_amount),
            "part_amount": str(self.part_amount),
            "vehicle_count": self.vehicle_count,
            "paid_service_count": self.paid_service_count,
            "free_service_count": self.free_service_count,
            "running_repair_count": self.running_repair_count,
        }


def record_value(record: Any, name: str) -> Any:
    """Read a field from either a normalized dict row or an ORM row."""

    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def advisor_name_key(record: Any) -> str:
    name = record_value(record, "service_advisor")
    if name is None:
        return UNKNOWN_ADVISOR
    trimmed = str(name).strip()
    return trimmed or UNKNOWN_ADVISOR


def linked_advisor_key(record: Any) -> str:
    """Bucket by linked advisor id, falling back to the name for unlinked rows."""

    advisor_id = record_value(record, "advisor_id")
    if advisor_id:
        return str(advisor_id)
    return advisor_name_key(record)


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def aggregate_by_advisor(
    records: Iterable[Any],
    *,
    key: Callable[[Any], str] = advisor_name_key,
) -> dict[str, AdvisorTotals]:
    """Fold records into per-advisor totals.

    The paid, free and running-repair counters are independent substring
    tests over the work type, so one record can bump several of them.
    """

    totals: dict[str, AdvisorTotals] = {}
    for record in records:
        bucket = totals.setdefault(key(record), AdvisorTotals())
        bucket.labour_amount += coerce_amount(record_value(record, "labour_amount"))
        bucket.part_amount += coerce_amount(record_value(record, "part_amount"))
        bucket.vehicle_count += 1

        work_type = str(record_value(record, "work_type") or "").lower()
        if _contains_any(work_type, PAID_MARKERS):
            bucket.paid_service_count += 1
        if _contains_any(work_type, FREE_MARKERS):
            bucket.free_service_count += 1
        if _contains_any(work_type, RUNNING_REPAIR_MARKERS):
            bucket.running_repair_count += 1
    return totals


def unique_advisor_names(records: Iterable[Any]) -> list[str]:
    """Distinct trimmed advisor names in first-seen order, blanks skipped."""

    names: dict[str, None] = {}
    for record in records:
        name = record_value(record, "service_advisor")
        trimmed = str(name).strip() if name is not None else ""
        if trimmed:
            names.setdefault(trimmed, None)
    return list(names)
