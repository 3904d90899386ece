from __future__ import annotations

from decimal import Decimal

from service_center.services.record_normalizer import coerce_amount, normalize_record, round_half_up


def test_aliases_are_renamed_to_canonical_fields() -> None:
    row = {"RO No": "RO-1", "Service Advisor": "Asha", "Labour Amount": "1200.50", "Parts": 300}

    normalized = normalize_record(row, "ro_billing")

    assert normalized == {
        "ro_number": "RO-1",
        "service_advisor": "Asha",
        "labour_amount": "1200.50",
        "part_amount": 300,
    }


def test_first_declared_alias_wins() -> None:
    row = {"RO Number": "second", "RO_No": "first"}

    assert normalize_record(row, "ro_billing")["ro_number"] == "first"


def test_unrecognized_columns_pass_through_and_missing_fields_are_absent() -> None:
    row = {"Reg No": "MH12AB1234", "Model": "Creta"}

    normalized = normalize_record(row, "booking_list")

    assert normalized == {"reg_no": "MH12AB1234", "Model": "Creta"}
    assert "service_advisor" not in normalized


def test_header_whitespace_is_ignored() -> None:
    assert normalize_record({" Claim No ": "C-9"}, "warranty") == {"claim_number": "C-9"}


def test_pass_through_columns_keep_their_original_header() -> None:
    normalized = normalize_record({" Reg No ": "MH12AB1234", " Remarks ": "late"}, "booking_list")

    assert normalized == {"reg_no": "MH12AB1234", " Remarks ": "late"}


def test_unknown_upload_type_returns_row_unchanged() -> None:
    row = {"Anything": 1, "RO No": "x"}

    assert normalize_record(row, "mystery") == row


def test_coerce_amount_treats_garbage_as_zero() -> None:
    assert coerce_amount("1,250.75") == Decimal("1250.75")
    assert coerce_amount(42) == Decimal("42")
    assert coerce_amount(None) == Decimal("0")
    assert coerce_amount("") == Decimal("0")
    assert coerce_amount("n/a") == Decimal("0")
    assert coerce_amount(float("nan")) == Decimal("0")
    assert coerce_amount(True) == Decimal("0")


def test_round_half_up_matches_dashboard_rounding() -> None:
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("2.4999")) == 2
    assert round_half_up(Decimal("-2.5")) == -2
    assert round_half_up(Decimal("7")) == 7
