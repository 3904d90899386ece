from __future__ import annotations

import uuid
from decimal import Decimal

from service_center.services.advisor_aggregation import (
    UNKNOWN_ADVISOR,
    aggregate_by_advisor,
    linked_advisor_key,
    unique_advisor_names,
)


def test_category_counters_for_single_advisor() -> None:
    records = [
        {"service_advisor": "Ravi", "work_type": "Paid Service"},
        {"service_advisor": "Ravi", "work_type": "Free Service"},
        {"service_advisor": "Ravi", "work_type": "Running Repair R&R"},
    ]

    totals = aggregate_by_advisor(records)["Ravi"]

    assert totals.vehicle_count == 3
    assert totals.paid_service_count == 1
    assert totals.free_service_count == 1
    assert totals.running_repair_count == 1


def test_counters_are_not_mutually_exclusive() -> None:
    records = [{"service_advisor": "Ravi", "work_type": "Paid + Free checkup"}]

    totals = aggregate_by_advisor(records)["Ravi"]

    assert totals.vehicle_count == 1
    assert totals.paid_service_count + totals.free_service_count == 2


def test_running_repair_markers() -> None:
    work_types = ["R and R", "rr job", "RUNNING", "running repair", "r&r", "General"]
    records = [{"service_advisor": "Ravi", "work_type": work_type} for work_type in work_types]

    assert aggregate_by_advisor(records)["Ravi"].running_repair_count == 5


def test_buckets_by_trimmed_case_preserved_name() -> None:
    records = [
        {"service_advisor": " Asha ", "labour_amount": "100"},
        {"service_advisor": "asha", "labour_amount": "50"},
        {"service_advisor": "", "labour_amount": "10"},
        {"labour_amount": "5"},
    ]

    totals = aggregate_by_advisor(records)

    assert set(totals) == {"Asha", "asha", UNKNOWN_ADVISOR}
    assert totals["Asha"].labour_amount == Decimal("100")
    assert totals[UNKNOWN_ADVISOR].vehicle_count == 2


def test_amounts_coerce_bad_values_to_zero() -> None:
    records = [
        {"service_advisor": "Asha", "labour_amount": "abc", "part_amount": "20.5"},
        {"service_advisor": "Asha", "labour_amount": 30, "part_amount": None},
    ]

    totals = aggregate_by_advisor(records)["Asha"]

    assert totals.labour_amount == Decimal("30")
    assert totals.part_amount == Decimal("20.5")


def test_vehicle_counts_partition_all_records() -> None:
    names = ["Asha", "Ravi", "", None, "Asha", " Ravi", "Meera"]
    records = [{"service_advisor": name} for name in names]

    totals = aggregate_by_advisor(records)

    assert sum(bucket.vehicle_count for bucket in totals.values()) == len(records)


def test_linked_key_prefers_advisor_id() -> None:
    advisor_id = uuid.uuid4()
    records = [
        {"service_advisor": "Asha K", "advisor_id": advisor_id},
        {"service_advisor": "Asha", "advisor_id": advisor_id},
        {"service_advisor": "Ravi", "advisor_id": None},
    ]

    totals = aggregate_by_advisor(records, key=linked_advisor_key)

    assert totals[str(advisor_id)].vehicle_count == 2
    assert totals["Ravi"].vehicle_count == 1


def test_unique_advisor_names_skip_blanks_and_keep_order() -> None:
    records = [{"service_advisor": "Ravi"}, {"service_advisor": " "}, {"service_advisor": "Asha"}, {"service_advisor": "Ravi "}]

    assert unique_advisor_names(records) == ["Ravi", "Asha"]
