from __future__ import annotations

import io
import uuid
from datetime import datetime

from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy.orm import Session

from service_center.core.auth import APP_ROLE_TO_DB_ROLE, AppRole, ensure_user_principal
from service_center.models.entities import RoleAssignment, Showroom

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
BILLING_HEADERS = ["RO_No", "Bill Date", "Service Advisor", "labour_amt", "part_amt", "Type", "VIN", "Zone"]


def _create_showroom(db: Session, *, code: str, name: str, city: str = "Pune") -> Showroom:
    now = datetime.utcnow()
    showroom = Showroom(code=code, name=name, city=city, active=True, created_at=now, updated_at=now)
    db.add(showroom)
    db.commit()
    db.refresh(showroom)
    return showroom


def _assign_role(
    db: Session,
    *,
    external_id: str,
    email: str,
    display_name: str,
    role: AppRole,
    showroom_id: uuid.UUID | None,
) -> RoleAssignment:
    user = ensure_user_principal(db, external_id=external_id, email=email, display_name=display_name)
    now = datetime.utcnow()
    assignment = RoleAssignment(
        user_id=user.id,
        showroom_id=showroom_id,
        role=APP_ROLE_TO_DB_ROLE[role],
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def _headers(external_id: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-USER-ID": external_id,
        "X-USER-EMAIL": email,
        "X-USER-NAME": display_name,
    }


def _owner(db: Session) -> dict[str, str]:
    _assign_role(
        db,
        external_id="ext-owner",
        email="owner@test.local",
        display_name="Owner",
        role=AppRole.OWNER,
        showroom_id=None,
    )
    return _headers("ext-owner", "owner@test.local", "Owner")


def _workbook(headers: list[str], rows: list[list[object]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(headers)
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _upload(
    client: TestClient,
    headers: dict[str, str],
    showroom_id: uuid.UUID,
    upload_type: str,
    filename: str,
    content: bytes,
):
    mime = "text/csv" if filename.endswith(".csv") else XLSX_MIME
    return client.post(
        f"/api/v1/showrooms/{showroom_id}/uploads",
        headers=headers,
        data={"upload_type": upload_type},
        files={"file": (filename, content, mime)},
    )


def test_billing_upload_cases_new_duplicate_and_mixed(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-UP", name="Uploads")
    headers = _owner(db_session)
    content = _workbook(
        BILLING_HEADERS,
        [
            ["RO-1", "2026-10-01", "Ravi Kumar", 1200.5, 800, "Paid Service", "MA1ABC", "North"],
            ["RO-2", "2026-10-02", "Anil", 500, 250, "Free Service", "MA1XYZ", "South"],
        ],
    )

    first = _upload(client, headers, showroom.id, "ro_billing", "billing.xlsx", content)
    assert first.status_code == 201
    created = first.json()
    assert created["upload_case"] == "new_file"
    assert created["inserted_count"] == 2
    assert created["updated_count"] == 0
    assert created["rows_count"] == 2
    assert created["processing_status"] == "completed"

    again = _upload(client, headers, showroom.id, "ro_billing", "billing-copy.xlsx", content)
    assert again.status_code == 201
    assert again.json()["upload_case"] == "duplicate_file"
    assert again.json()["inserted_count"] == 0
    assert again.json()["updated_count"] == 2

    mixed = _upload(
        client,
        headers,
        showroom.id,
        "ro_billing",
        "billing-next.xlsx",
        _workbook(
            BILLING_HEADERS,
            [
                ["RO-2", "2026-10-02", "Anil", 650, 250, "Free Service", "MA1XYZ", "South"],
                ["RO-3", "2026-10-03", "Anil", 300, 100, "Paid Service", "MA1QQQ", "South"],
            ],
        ),
    )
    assert mixed.status_code == 201
    assert mixed.json()["upload_case"] == "mixed_file"
    assert mixed.json()["inserted_count"] == 1
    assert mixed.json()["updated_count"] == 1

    records = client.get(f"/api/v1/showrooms/{showroom.id}/records/ro_billing", headers=headers)
    assert records.status_code == 200
    by_ro = {row["ro_number"]: row for row in records.json()["data"]}
    assert set(by_ro) == {"RO-1", "RO-2", "RO-3"}
    assert by_ro["RO-1"]["labour_amount"] == "1200.50"
    assert by_ro["RO-1"]["work_type"] == "Paid Service"
    assert by_ro["RO-1"]["extra"] == {"Zone": "North"}
    assert by_ro["RO-2"]["labour_amount"] == "650.00"


def test_csv_booking_upload_uses_header_aliases(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-CSV", name="Csv")
    headers = _owner(db_session)
    content = (
        "Reg_No,VIN,Service Advisor,BT Date Time,Work Type,Booking Status\n"
        "MH12AB1234,MA1 ABC,Ravi Kumar,20-10-2026,Paid Service,Confirmed\n"
        "MH12CD5678,,Anil,19-10-2026,Free Service,Confirmed\n"
    ).encode("utf-8")

    response = _upload(client, headers, showroom.id, "booking_list", "bookings.csv", content)
    assert response.status_code == 201
    assert response.json()["inserted_count"] == 2

    records = client.get(f"/api/v1/showrooms/{showroom.id}/records/service_booking", headers=headers)
    assert records.status_code == 200
    rows = {row["reg_no"]: row for row in records.json()["data"]}
    assert rows["MH12AB1234"]["vin"] == "MA1 ABC"
    assert rows["MH12AB1234"]["bt_date_time"] == "20-10-2026"
    assert rows["MH12AB1234"]["matched"] is False
    assert rows["MH12CD5678"]["vin"] is None


def test_booking_match_flag_follows_billing_uploads(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-MT", name="Matching")
    headers = _owner(db_session)
    bookings = (
        "Reg_No,VIN,Service Advisor,BT Date Time\n"
        "MH12AB1234,ma1 abc,Ravi Kumar,20-10-2026\n"
        "MH12ZZ0001,,Anil,20-10-2026\n"
    ).encode("utf-8")
    assert _upload(client, headers, showroom.id, "booking_list", "bookings.csv", bookings).status_code == 201

    billing = _upload(
        client,
        headers,
        showroom.id,
        "ro_billing",
        "billing.xlsx",
        _workbook(
            ["RO_No", "Service Advisor", "labour_amt", "VIN", "Reg_No"],
            [
                ["RO-9", "Ravi Kumar", 100, "MA1ABC", "MH01XX0000"],
                ["RO-10", "Anil", 100, None, "mh12 zz 0001"],
            ],
        ),
    )
    assert billing.status_code == 201

    rows = client.get(f"/api/v1/showrooms/{showroom.id}/records/booking_list", headers=headers).json()["data"]
    assert {row["reg_no"]: row["matched"] for row in rows} == {"MH12AB1234": True, "MH12ZZ0001": True}

    deleted = client.delete(f"/api/v1/uploads/{billing.json()['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["deleted_records"] == 2

    rows = client.get(f"/api/v1/showrooms/{showroom.id}/records/booking_list", headers=headers).json()["data"]
    assert all(row["matched"] is False for row in rows)
    billing_rows = client.get(f"/api/v1/showrooms/{showroom.id}/records/ro_billing", headers=headers)
    assert billing_rows.json()["data"] == []


def test_invalid_uploads_are_rejected_and_recorded(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-BAD", name="Bad Files")
    headers = _owner(db_session)

    bad_type = _upload(client, headers, showroom.id, "invoices", "x.csv", b"RO_No\nRO-1\n")
    assert bad_type.status_code == 422

    missing_key = _upload(
        client,
        headers,
        showroom.id,
        "warranty",
        "warranty.csv",
        b"Claim Type,Status\nPaid,Open\n",
    )
    assert missing_key.status_code == 422
    assert "claim_number" in missing_key.json()["detail"]

    wrong_extension = _upload(client, headers, showroom.id, "ro_billing", "billing.txt", b"RO_No\nRO-1\n")
    assert wrong_extension.status_code == 422

    history = client.get(f"/api/v1/showrooms/{showroom.id}/uploads", headers=headers)
    assert history.status_code == 200
    items = history.json()["items"]
    assert len(items) == 2
    assert {item["processing_status"] for item in items} == {"failed"}
    assert all(item["error_message"] for item in items)


def test_unparseable_csv_marks_upload_failed(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-HUGE", name="Huge Cell")
    headers = _owner(db_session)
    body = b"RO_No,Remarks\nRO-1," + b"x" * 200_000 + b"\n"

    response = _upload(client, headers, showroom.id, "ro_billing", "billing.csv", body)
    assert response.status_code == 422

    items = client.get(f"/api/v1/showrooms/{showroom.id}/uploads", headers=headers).json()["items"]
    assert [item["processing_status"] for item in items] == ["failed"]
    assert "field larger than field limit" in items[0]["error_message"]


def test_upload_history_and_stats(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-ST", name="Stats")
    headers = _owner(db_session)
    operations = b"OP_Part_Code,op_part_description,count,part_cost\nOP-1,Oil filter,3,\"1,500\"\nOP-2,Wiper,1,250\n"
    assert _upload(client, headers, showroom.id, "operations_part", "ops.csv", operations).status_code == 201
    assert _upload(client, headers, showroom.id, "warranty", "w.csv", b"Claim Type\nPaid\n").status_code == 422

    stats = client.get(f"/api/v1/showrooms/{showroom.id}/uploads/stats", headers=headers)
    assert stats.status_code == 200
    by_type = stats.json()["by_type"]
    assert by_type["operations_part"]["files"] == 1
    assert by_type["operations_part"]["completed"] == 1
    assert by_type["operations_part"]["records"] == 2
    assert by_type["operations_part"]["last_upload_at"] is not None
    assert by_type["warranty"]["failed"] == 1
    assert by_type["booking_list"]["files"] == 0
    assert by_type["booking_list"]["last_upload_at"] is None

    filtered = client.get(
        f"/api/v1/showrooms/{showroom.id}/uploads",
        headers=headers,
        params={"upload_type": "operations_part"},
    )
    assert [item["uploaded_file_name"] for item in filtered.json()["items"]] == ["ops.csv"]

    records = client.get(f"/api/v1/showrooms/{showroom.id}/records/operations", headers=headers)
    amounts = {row["op_part_code"]: row["amount"] for row in records.json()["data"]}
    assert amounts == {"OP-1": "1500.00", "OP-2": "250.00"}

    unknown = client.get(f"/api/v1/showrooms/{showroom.id}/records/invoices", headers=headers)
    assert unknown.status_code == 422


def test_advisor_linking_and_own_booking_visibility(client: TestClient, db_session: Session) -> None:
    showroom = _create_showroom(db_session, code="PUN-SA", name="Advisors")
    headers = _owner(db_session)
    ravi = _assign_role(
        db_session,
        external_id="ext-ravi",
        email="ravi@test.local",
        display_name="Ravi Kumar",
        role=AppRole.SERVICE_ADVISOR,
        showroom_id=showroom.id,
    )
    bookings = (
        "Reg_No,Service Advisor,BT Date Time\n"
        "MH12AB0001,ravi  kumar,20-10-2026\n"
        "MH12AB0002,Anil,20-10-2026\n"
    ).encode("utf-8")
    assert _upload(client, headers, showroom.id, "booking_list", "bookings.csv", bookings).status_code == 201

    owner_view = client.get(f"/api/v1/showrooms/{showroom.id}/records/booking_list", headers=headers)
    linked = {row["reg_no"]: row["advisor_id"] for row in owner_view.json()["data"]}
    assert linked == {"MH12AB0001": str(ravi.user_id), "MH12AB0002": None}

    advisor_headers = _headers("ext-ravi", "ravi@test.local", "Ravi Kumar")
    advisor_view = client.get(f"/api/v1/showrooms/{showroom.id}/records/booking_list", headers=advisor_headers)
    assert advisor_view.status_code == 200
    assert [row["reg_no"] for row in advisor_view.json()["data"]] == ["MH12AB0001"]

    forbidden = _upload(client, advisor_headers, showroom.id, "booking_list", "bookings.csv", bookings)
    assert forbidden.status_code == 403


def test_records_are_isolated_per_showroom(client: TestClient, db_session: Session) -> None:
    pune = _create_showroom(db_session, code="PUN-ISO", name="Pune Iso")
    mumbai = _create_showroom(db_session, code="MUM-ISO", name="Mumbai Iso", city="Mumbai")
    headers = _owner(db_session)
    _assign_role(
        db_session,
        external_id="ext-sm-pune",
        email="sm.pune@test.local",
        display_name="Pune SM",
        role=AppRole.SERVICE_MANAGER,
        showroom_id=pune.id,
    )
    assert _upload(client, headers, pune.id, "ro_billing", "p.csv", b"RO_No,labour_amt\nRO-1,100\n").status_code == 201
    assert _upload(client, headers, mumbai.id, "ro_billing", "m.csv", b"RO_No,labour_amt\nRO-1,900\n").status_code == 201

    pune_rows = client.get(f"/api/v1/showrooms/{pune.id}/records/ro_billing", headers=headers).json()["data"]
    assert [row["labour_amount"] for row in pune_rows] == ["100.00"]

    manager_headers = _headers("ext-sm-pune", "sm.pune@test.local", "Pune SM")
    denied = client.get(f"/api/v1/showrooms/{mumbai.id}/records/ro_billing", headers=manager_headers)
    assert denied.status_code == 403

    missing = client.get(f"/api/v1/showrooms/{uuid.uuid4()}/records/ro_billing", headers=headers)
    assert missing.status_code == 404
