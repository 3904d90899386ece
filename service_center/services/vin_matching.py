"""Booking to repair-order reconciliation by vehicle identifier."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable

from service_center.services.advisor_aggregation import UNKNOWN_ADVISOR, record_value
from service_center.services.record_normalizer import round_half_up

logger = logging.getLogger(__name__)

STATUS_CONVERTED = "converted"
STATUS_PROCESSING = "processing"
STATUS_TOMORROW = "tomorrow"
STATUS_FUTURE = "future"

STATUS_LABELS: dict[str, str] = {
    STATUS_CONVERTED: "Converted",
    STATUS_PROCESSING: "Booking Processing",
    STATUS_TOMORROW: "Tomorrow Delivery",
    STATUS_FUTURE: "Future Delivery",
}

EXCEL_EPOCH = date(1899, 12, 30)
_SERIAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")
_DD_MM_YYYY_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_DATE_FORMATS = (
    "%d/%m/%Y",
    "%d-%m-%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%b-%Y",
    "%d %b %Y",
)
_WHITESPACE = re.compile(r"\s+")


def normalize_identifier(value: Any) -> str:
    """Uppercase with all whitespace removed; blanks become an empty string."""

    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).upper()


def vehicle_identifier(record: Any) -> str:
    """Normalized VIN when present, otherwise the registration number."""

    vin = normalize_identifier(record_value(record, "vin"))
    if vin:
        return vin
    for name in ("reg_no", "vehicle_number"):
        registration = normalize_identifier(record_value(record, name))
        if registration:
            return registration
    return ""


def billing_identifiers(records: Iterable[Any]) -> set[str]:
    return {identifier for identifier in (vehicle_identifier(record) for record in records) if identifier}


def is_matched(booking: Any, identifiers: set[str]) -> bool:
    """Exact normalized equality only; bookings without an identifier never match."""

    identifier = vehicle_identifier(booking)
    return bool(identifier) and identifier in identifiers


def conversion_rate(matched: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(Decimal(matched) * 100 / Decimal(total))


def summarize_matches(bookings: Iterable[Any], billing: Iterable[Any]) -> dict[str, int]:
    identifiers = billing_identifiers(billing)
    total = 0
    matched = 0
    for booking in bookings:
        total += 1
        if is_matched(booking, identifiers):
            matched += 1

    return {
        "total_bookings": total,
        "matched_vins": matched,
        "unmatched_vins": total - matched,
        "conversion_rate": conversion_rate(matched, total),
    }


def _from_excel_serial(serial: float) -> date | None:
    # Numbers too large for a calendar date (e.g. a pasted booking number) are not dates.
    try:
        return EXCEL_EPOCH + timedelta(days=int(serial))
    except (OverflowError, ValueError):
        return None


def parse_booking_date(value: Any) -> date | None:
    """Best-effort booking date; Excel serials, DD-MM-YYYY and ISO forms are accepted."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_excel_serial(value)

    text = str(value).strip()
    if not text:
        return None
    if _SERIAL_PATTERN.match(text):
        return _from_excel_serial(float(text))

    match = _DD_MM_YYYY_PATTERN.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for pattern in _DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    return None


def booking_status(booking: Any, identifiers: set[str], today: date) -> str:
    if is_matched(booking, identifiers):
        return STATUS_CONVERTED

    booked_on = parse_booking_date(record_value(booking, "bt_date_time"))
    if booked_on is None or booked_on <= today:
        return STATUS_PROCESSING
    if booked_on == today + timedelta(days=1):
        return STATUS_TOMORROW
    return STATUS_FUTURE


@dataclass(slots=True)
class _StatusCounts:
    count: int = 0
    converted: int = 0
    processing: int = 0
    tomorrow: int = 0
    future: int = 0
    booking_statuses: dict[str, int] = field(default_factory=dict)

    def add(self, category: str) -> None:
        self.count += 1
        setattr(self, category, getattr(self, category) + 1)

    def as_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "converted": self.converted,
            "processing": self.processing,
            "tomorrow": self.tomorrow,
            "future": self.future,
            "conversion_rate": conversion_rate(self.converted, self.count),
        }


def match_bookings(bookings: Iterable[Any], billing: Iterable[Any], *, today: date) -> dict[str, object]:
    """Classify every booking and build the summary and per-advisor breakdowns."""

    identifiers = billing_identifiers(billing)
    rows: list[dict[str, object]] = []
    status_summary: dict[str, dict[str, object]] = {}
    by_advisor: dict[str, _StatusCounts] = {}
    by_work_type: dict[tuple[str, str], _StatusCounts] = {}

    for booking in bookings:
        category = booking_status(booking, identifiers, today)
        advisor = str(record_value(booking, "service_advisor") or "").strip() or UNKNOWN_ADVISOR
        work_type = str(record_value(booking, "work_type") or "").strip() or "Unknown"
        sheet_status = str(record_value(booking, "booking_status") or "").strip() or "Unknown"

        summary = status_summary.setdefault(category, {"status": STATUS_LABELS[category], "count": 0})
        summary["count"] = int(summary["count"]) + 1

        by_advisor.setdefault(advisor, _StatusCounts()).add(category)
        work_type_counts = by_work_type.setdefault((advisor, work_type), _StatusCounts())
        work_type_counts.add(category)
        work_type_counts.booking_statuses[sheet_status] = work_type_counts.booking_statuses.get(sheet_status, 0) + 1

        rows.append(
            {
                "reg_no": record_value(booking, "reg_no"),
                "vin": record_value(booking, "vin"),
                "service_advisor": advisor,
                "work_type": work_type,
                "bt_date_time": record_value(booking, "bt_date_time"),
                "vin_matched": category == STATUS_CONVERTED,
                "status_category": category,
                "computed_status": STATUS_LABELS[category],
            }
        )

    matched = sum(1 for row in rows if row["vin_matched"])
    logger.info("Matched %s of %s bookings against %s identifiers", matched, len(rows), len(identifiers))

    advisor_breakdown = [
        {"advisor": advisor, **counts.as_dict()}
        for advisor, counts in sorted(by_advisor.items(), key=lambda item: (-item[1].count, item[0]))
    ]
    work_type_breakdown = [
        {
            "advisor": advisor,
            "work_type": work_type,
            **counts.as_dict(),
            "booking_statuses": dict(counts.booking_statuses),
        }
        for (advisor, work_type), counts in sorted(by_work_type.items())
    ]

    return {
        "total_bookings": len(rows),
        "matched_vins": matched,
        "unmatched_vins": len(rows) - matched,
        "conversion_rate": conversion_rate(matched, len(rows)),
        "status_summary": status_summary,
        "advisor_breakdown": advisor_breakdown,
        "work_type_breakdown": work_type_breakdown,
        "bookings": rows,
    }
