"""Splitting a city-level target across service advisors."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Iterable, Mapping

from service_center.services.record_normalizer import ZERO, coerce_amount, round_half_up

TARGET_FIELDS = ("labour", "parts", "total_vehicles", "paid_service", "free_service", "rr")
MONEY_FIELDS = ("labour", "parts")


class UnknownAdvisorError(ValueError):
    """Manual distribution named advisors outside the showroom's advisor set."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(f"Unknown advisors: {', '.join(names)}")
        self.names = names


@dataclass(slots=True)
class TargetMetrics:
    labour: Decimal = ZERO
    parts: Decimal = ZERO
    total_vehicles: int = 0
    paid_service: int = 0
    free_service: int = 0
    rr: int = 0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TargetMetrics":
        """Build metrics from loosely typed input, missing or bad values become zero."""

        return cls(
            labour=coerce_amount(values.get("labour")),
            parts=coerce_amount(values.get("parts")),
            total_vehicles=int(coerce_amount(values.get("total_vehicles"))),
            paid_service=int(coerce_amount(values.get("paid_service"))),
            free_service=int(coerce_amount(values.get("free_service"))),
            rr=int(coerce_amount(values.get("rr"))),
        )

    @classmethod
    def from_row(cls, row: Any) -> "TargetMetrics":
        return cls(**{name: getattr(row, name) for name in TARGET_FIELDS})

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            payload[item.name] = str(value) if item.name in MONEY_FIELDS else value
        return payload


@dataclass(slots=True)
class AdvisorShare:
    advisor_name: str
    metrics: TargetMetrics


def distribute_evenly(city_target: TargetMetrics, advisor_names: Iterable[str]) -> list[AdvisorShare]:
    """Give every advisor ``round(field / n)`` of each field.

    Fields are rounded independently and the remainder is not carried, so the
    shares may not add up exactly to the city target.
    """

    names = list(advisor_names)
    if not names:
        return []

    count = Decimal(len(names))
    share = {
        name: _even_share(getattr(city_target, name), count, money=name in MONEY_FIELDS)
        for name in TARGET_FIELDS
    }
    return [AdvisorShare(advisor_name=name, metrics=TargetMetrics(**share)) for name in names]


def _even_share(total: Decimal | int, count: Decimal, *, money: bool) -> Decimal | int:
    rounded = round_half_up(Decimal(total) / count)
    if money:
        return Decimal(rounded).quantize(Decimal("0.01"))
    return rounded


def manual_distribution(
    entries: Mapping[str, TargetMetrics],
    advisor_names: Iterable[str],
) -> list[AdvisorShare]:
    """Explicit per-advisor targets for a subset of the showroom's advisors.

    Advisors without an entry get no share. Names outside ``advisor_names``
    raise :class:`UnknownAdvisorError`.
    """

    known = list(advisor_names)
    unknown = [name for name in entries if name not in known]
    if unknown:
        raise UnknownAdvisorError(sorted(unknown))

    return [AdvisorShare(advisor_name=name, metrics=entries[name]) for name in known if name in entries]
