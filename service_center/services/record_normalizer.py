"""Header alias mapping for uploaded spreadsheet rows."""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Mapping

ZERO = Decimal("0.00")
HALF = Decimal("0.5")

# Canonical field -> accepted header variants, first present variant wins.
FIELD_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "ro_billing": {
        "ro_number": ("RO_No", "RO No", "RO Number", "RO_Number", "ro_no", "ro_number"),
        "bill_date": ("bill_date", "Bill Date", "Date", "Invoice Date"),
        "service_advisor": ("service_advisor", "Service Advisor", "Advisor", "SA"),
        "labour_amount": ("labour_amt", "labour_amount", "Labour Amount", "Labor Amount", "Labour"),
        "part_amount": ("part_amt", "part_amount", "Part Amount", "Parts", "Part Cost"),
        "total_amount": ("total_amount", "Total Amount", "Total", "Amount"),
        "work_type": ("work_type", "Work Type", "Service Type", "Type"),
        "vehicle_number": ("vehicle_number", "Vehicle Number", "Vehicle No", "Reg No", "Reg_No"),
        "vin": ("vin", "VIN", "VIN No", "Chassis No"),
        "customer_name": ("customer_name", "Customer Name", "Customer", "Name"),
    },
    "warranty": {
        "ro_number": ("RO_No", "RO No", "RO Number", "RO_Number", "ro_no", "ro_number"),
        "claim_date": ("claim_date", "Claim Date", "Date"),
        "claim_number": ("claim_number", "Claim Number", "Claim No"),
        "claim_type": ("claim_type", "Claim Type", "Type"),
        "status": ("status", "Status", "Claim Status"),
        "labour_amount": ("labour_amount", "Labour Amount", "Labor Amount"),
        "part_amount": ("part_amount", "Part Amount", "Parts Amount"),
        "vehicle_number": ("vehicle_number", "Vehicle Number", "Reg No"),
    },
    "booking_list": {
        "reg_no": ("Reg_No", "Reg No", "Registration Number", "Vehicle Number", "reg_no"),
        "vin": ("vin", "VIN", "VIN No", "Chassis No"),
        "service_advisor": ("service_advisor", "Service Advisor", "Advisor"),
        "bt_date_time": ("bt_date_time", "BT Date Time", "Booking Time", "Booking Date"),
        "work_type": ("work_type", "Work Type", "Service Type"),
        "booking_status": ("booking_status", "Booking Status", "Status"),
        "booking_number": ("booking_number", "Booking Number", "Booking No"),
        "customer_name": ("customer_name", "Customer Name", "Customer"),
    },
    "operations_part": {
        "op_part_code": ("OP_Part_Code", "OP Part Code", "Operation Code", "Part Code", "op_part_code"),
        "description": ("op_part_description", "Description", "Part Description"),
        "count": ("count", "Count", "Qty", "Quantity"),
        "labour_time": ("labour_time", "Labour Time", "Time"),
        "amount": ("part_cost", "Part Cost", "Cost", "Amount"),
    },
    "repair_order_list": {
        "ro_number": ("RO_No", "RO No", "RO Number", "RO_Number", "ro_no", "ro_number"),
        "ro_date": ("ro_date", "RO Date", "Date"),
        "service_advisor": ("service_advisor", "Service Advisor", "Advisor", "SA"),
        "vin": ("vin", "VIN", "VIN No", "Chassis No"),
        "vehicle_number": ("vehicle_number", "Vehicle Number", "Vehicle No", "Reg No", "Reg_No"),
        "work_type": ("work_type", "Work Type", "Service Type"),
        "status": ("status", "Status", "RO Status"),
        "customer_name": ("customer_name", "Customer Name", "Customer"),
    },
}

# Field each upload type is keyed on for upserts.
UNIQUE_KEYS: dict[str, str] = {
    "ro_billing": "ro_number",
    "warranty": "claim_number",
    "booking_list": "reg_no",
    "operations_part": "op_part_code",
    "repair_order_list": "ro_number",
}


def normalize_record(row: Mapping[str, Any], upload_type: str) -> dict[str, Any]:
    """Rename recognized header variants to canonical field names.

    Canonical fields without a matching header are left out. Columns that
    are not an alias of any canonical field are copied through untouched,
    original header key included. Alias lookup ignores surrounding whitespace.
    An unknown ``upload_type`` returns the row unchanged.
    """

    aliases = FIELD_ALIASES.get(upload_type)
    if aliases is None:
        return dict(row)

    stripped = {str(key).strip(): value for key, value in row.items()}
    normalized: dict[str, Any] = {}
    known_headers: set[str] = set()

    for field, variants in aliases.items():
        known_headers.update(variants)
        for variant in variants:
            if variant in stripped:
                normalized[field] = stripped[variant]
                break

    for header, value in row.items():
        name = str(header).strip()
        if name not in known_headers and name not in normalized:
            normalized[header] = value
    return normalized


def coerce_amount(value: Any) -> Decimal:
    """Numeric value of a cell, zero for blanks and anything non-numeric."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        return result if result.is_finite() else ZERO

    text = str(value).strip().replace(",", "")
    if not text:
        return ZERO
    try:
        result = Decimal(text)
    except InvalidOperation:
        return ZERO
    return result if result.is_finite() else ZERO


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves going up as the dashboards round."""

    return int((value + HALF).to_integral_value(rounding=ROUND_FLOOR))


def clean_text(value: Any) -> str | None:
    """Trimmed string form of a cell, None for blanks."""

    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None
