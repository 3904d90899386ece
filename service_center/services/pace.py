"""Shortfall and required daily pace against a monthly target."""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

SUNDAY = 6


def remaining_working_days(today: date) -> int:
    """Days from ``today`` inclusive to month end, Sundays excluded."""

    last_day = calendar.monthrange(today.year, today.month)[1]
    month_end = today.replace(day=last_day)
    days = 0
    current = today
    while current <= month_end:
        if current.weekday() != SUNDAY:
            days += 1
        current += timedelta(days=1)
    return days


@dataclass(slots=True)
class Pace:
    target: Decimal
    achieved: Decimal
    shortfall: Decimal
    per_day_required: int
    achievement_percent: Decimal | None

    def as_dict(self) -> dict[str, object]:
        return {
            "target": str(self.target),
            "achieved": str(self.achieved),
            "shortfall": str(self.shortfall),
            "per_day_required": self.per_day_required,
            "achievement_percent": None if self.achievement_percent is None else str(self.achievement_percent),
        }


def compute_pace(target: Decimal | int, achieved: Decimal | int, remaining_days: int) -> Pace:
    target_value = Decimal(target)
    achieved_value = Decimal(achieved)
    shortfall = max(Decimal(0), target_value - achieved_value)
    per_day = math.ceil(shortfall / Decimal(max(1, remaining_days)))

    percent = None
    if target_value != 0:
        percent = (achieved_value * 100 / target_value).quantize(Decimal("0.01"))

    return Pace(
        target=target_value,
        achieved=achieved_value,
        shortfall=shortfall,
        per_day_required=int(per_day),
        achievement_percent=percent,
    )
