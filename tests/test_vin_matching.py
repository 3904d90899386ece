from __future__ import annotations

from datetime import date, datetime

from service_center.services.vin_matching import (
    STATUS_CONVERTED,
    STATUS_FUTURE,
    STATUS_PROCESSING,
    STATUS_TOMORROW,
    booking_status,
    is_matched,
    match_bookings,
    normalize_identifier,
    parse_booking_date,
    summarize_matches,
    vehicle_identifier,
)

TODAY = date(2026, 10, 19)


def test_matching_ignores_case_and_whitespace_but_not_suffixes() -> None:
    identifiers = {normalize_identifier(" mh12ab1234 ")}

    assert is_matched({"reg_no": "MH12AB1234"}, identifiers) is True
    assert is_matched({"reg_no": "MH12AB1234X"}, identifiers) is False
    assert is_matched({"reg_no": "MH12 AB 1234"}, identifiers) is True


def test_vin_is_preferred_over_registration() -> None:
    assert vehicle_identifier({"vin": " abc123 ", "reg_no": "MH12"}) == "ABC123"
    assert vehicle_identifier({"vin": "", "reg_no": "mh12"}) == "MH12"
    assert vehicle_identifier({"vehicle_number": "ka01"}) == "KA01"
    assert vehicle_identifier({}) == ""


def test_booking_without_identifier_never_matches() -> None:
    assert is_matched({"reg_no": "  "}, {""}) is False


def test_summary_for_ten_bookings_six_matched() -> None:
    bookings = [{"reg_no": f"MH12AB{index:04d}"} for index in range(10)]
    billing = [{"vehicle_number": f" mh12ab{index:04d} "} for index in range(6)]

    summary = summarize_matches(bookings, billing)

    assert summary == {
        "total_bookings": 10,
        "matched_vins": 6,
        "unmatched_vins": 4,
        "conversion_rate": 60,
    }


def test_empty_billing_leaves_everything_unmatched() -> None:
    summary = summarize_matches([{"reg_no": "A1"}, {"reg_no": "B2"}], [])

    assert summary["matched_vins"] == 0
    assert summary["unmatched_vins"] == 2
    assert summary["conversion_rate"] == 0


def test_parse_booking_date_formats() -> None:
    assert parse_booking_date("20-10-2026") == date(2026, 10, 20)
    assert parse_booking_date("2026-10-20") == date(2026, 10, 20)
    assert parse_booking_date("2026-10-20T09:30:00") == date(2026, 10, 20)
    assert parse_booking_date("46315") == date(2026, 10, 20)
    assert parse_booking_date(46315.75) == date(2026, 10, 20)
    assert parse_booking_date(datetime(2026, 10, 20, 9, 30)) == date(2026, 10, 20)
    assert parse_booking_date("next week") is None
    assert parse_booking_date(None) is None


def test_booking_status_categories() -> None:
    identifiers = {"MATCHED1"}

    assert booking_status({"reg_no": "matched1", "bt_date_time": "25-12-2026"}, identifiers, TODAY) == STATUS_CONVERTED
    assert booking_status({"reg_no": "X", "bt_date_time": "19-10-2026"}, identifiers, TODAY) == STATUS_PROCESSING
    assert booking_status({"reg_no": "X", "bt_date_time": "01-10-2026"}, identifiers, TODAY) == STATUS_PROCESSING
    assert booking_status({"reg_no": "X", "bt_date_time": "20-10-2026"}, identifiers, TODAY) == STATUS_TOMORROW
    assert booking_status({"reg_no": "X", "bt_date_time": "25-10-2026"}, identifiers, TODAY) == STATUS_FUTURE
    assert booking_status({"reg_no": "X", "bt_date_time": "garbage"}, identifiers, TODAY) == STATUS_PROCESSING


def test_match_bookings_builds_advisor_breakdown() -> None:
    bookings = [
        {"reg_no": "A1", "service_advisor": "Asha", "work_type": "Paid", "bt_date_time": "19-10-2026"},
        {"reg_no": "A2", "service_advisor": "Asha", "work_type": "Paid", "bt_date_time": "20-10-2026"},
        {"reg_no": "A3", "service_advisor": "Asha", "work_type": "Free", "bt_date_time": "30-10-2026"},
        {"reg_no": "B1", "service_advisor": "", "work_type": "", "bt_date_time": None},
    ]
    billing = [{"vin": "a1"}, {"vehicle_number": "b1"}]

    result = match_bookings(bookings, billing, today=TODAY)

    assert result["total_bookings"] == 4
    assert result["matched_vins"] == 2
    assert result["conversion_rate"] == 50
    assert result["status_summary"]["converted"]["count"] == 2
    assert result["status_summary"]["tomorrow"]["count"] == 1
    assert result["status_summary"]["future"]["count"] == 1

    asha = next(row for row in result["advisor_breakdown"] if row["advisor"] == "Asha")
    assert asha == {
        "advisor": "Asha",
        "count": 3,
        "converted": 1,
        "processing": 0,
        "tomorrow": 1,
        "future": 1,
        "conversion_rate": 33,
    }
    paid = next(
        row for row in result["work_type_breakdown"] if row["advisor"] == "Asha" and row["work_type"] == "Paid"
    )
    assert paid["count"] == 2
    assert paid["conversion_rate"] == 50


def test_out_of_range_serial_dates_count_as_processing() -> None:
    for value in ("99999999", 3.0e6, "1234567890", float("inf"), float("nan")):
        assert parse_booking_date(value) is None
        assert booking_status({"reg_no": "X", "bt_date_time": value}, set(), TODAY) == STATUS_PROCESSING
