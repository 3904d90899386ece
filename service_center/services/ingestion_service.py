"""Spreadsheet upload ingestion, upload history and record listing."""

from __future__ import annotations

import csv
import hashlib
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID
from zipfile import BadZipFile

from fastapi import HTTPException, status
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from service_center.core.auth import (
    UPLOAD_ROLES,
    VIEW_ROLES,
    RequestUserContext,
    ensure_showroom_access,
    ensure_showroom_exists,
)
from service_center.core.config import get_settings
from service_center.models.entities import BookingRecord, ProcessingStatus, UploadedFile, UploadType
from service_center.repositories.showroom_repository import RECORD_MODELS, ShowroomRepository
from service_center.services.advisor_linking import map_advisor_names
from service_center.services.record_normalizer import (
    FIELD_ALIASES,
    UNIQUE_KEYS,
    clean_text,
    coerce_amount,
    normalize_record,
)
from service_center.services.vin_matching import billing_identifiers, is_matched

logger = logging.getLogger(__name__)

CASE_NEW_FILE = "new_file"
CASE_DUPLICATE_FILE = "duplicate_file"
CASE_MIXED_FILE = "mixed_file"

Q2 = Decimal("0.01")
AMOUNT_FIELDS = {"labour_amount", "part_amount", "total_amount", "count", "amount", "labour_time"}
DATE_FIELDS = {"bill_date", "claim_date", "bt_date_time", "ro_date"}
ADVISOR_LINKED_TYPES = {UploadType.RO_BILLING, UploadType.BOOKING_LIST, UploadType.REPAIR_ORDER_LIST}
MATCH_AFFECTING_TYPES = {UploadType.RO_BILLING, UploadType.BOOKING_LIST, UploadType.REPAIR_ORDER_LIST}

# Public data-type names accepted by the record listing endpoint.
DATA_TYPE_ALIASES: dict[str, UploadType] = {
    "ro_billing": UploadType.RO_BILLING,
    "operations": UploadType.OPERATIONS_PART,
    "operations_part": UploadType.OPERATIONS_PART,
    "warranty": UploadType.WARRANTY,
    "service_booking": UploadType.BOOKING_LIST,
    "booking_list": UploadType.BOOKING_LIST,
    "repair_order_list": UploadType.REPAIR_ORDER_LIST,
}


class UploadProcessingError(ValueError):
    """Upload content could not be turned into records."""


@dataclass(slots=True)
class UploadResult:
    uploaded_file: UploadedFile
    upload_case: str
    inserted_count: int
    updated_count: int


def parse_upload_type(value: str) -> UploadType:
    try:
        return UploadType(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in UploadType)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"upload_type must be one of: {allowed}.",
        ) from exc


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def read_spreadsheet_rows(filename: str, content: bytes) -> list[dict[str, Any]]:
    """Header-keyed rows from the first worksheet of an .xlsx file or from a .csv file."""

    lowered = filename.lower()
    if lowered.endswith(".csv"):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise UploadProcessingError("CSV file must be UTF-8 encoded.") from exc
        reader = csv.DictReader(io.StringIO(text))
        try:
            return [
                {key: value for key, value in row.items() if key is not None}
                for row in reader
                if any(value not in (None, "") for value in row.values())
            ]
        except csv.Error as exc:
            raise UploadProcessingError(f"CSV file could not be parsed: {exc}.") from exc

    if not lowered.endswith((".xlsx", ".xlsm")):
        raise UploadProcessingError("Only .xlsx and .csv files are supported.")

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise UploadProcessingError("File is not a readable Excel workbook.") from exc

    try:
        sheet = workbook.worksheets[0]
        row_iter = sheet.iter_rows(values_only=True)
        header_row = next(row_iter, None)
        if header_row is None:
            return []
        headers = [str(cell).strip() if cell is not None else "" for cell in header_row]

        rows: list[dict[str, Any]] = []
        for values in row_iter:
            if values is None or all(value in (None, "") for value in values):
                continue
            row = {
                header: value
                for header, value in zip(headers, values)
                if header
            }
            rows.append(row)
        return rows
    except (BadZipFile, KeyError, OSError, ValueError) as exc:
        raise UploadProcessingError("Worksheet rows could not be read.") from exc
    finally:
        workbook.close()


def compute_file_hash(rows: list[dict[str, Any]], upload_type: UploadType) -> str:
    """Fingerprint used to recognise a re-upload of the same sheet."""

    fingerprint = {
        "fileType": upload_type.value,
        "rowCount": len(rows),
        "firstRow": {key: _json_safe(value) for key, value in rows[0].items()} if rows else {},
        "lastRow": {key: _json_safe(value) for key, value in rows[-1].items()} if rows else {},
    }
    payload = json.dumps(fingerprint, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def _column_value(field: str, value: Any) -> Any:
    if field in AMOUNT_FIELDS:
        return coerce_amount(value).quantize(Q2)
    if field in DATE_FIELDS and isinstance(value, (datetime, date)):
        return value.isoformat()
    return clean_text(value)


def apply_row(record: Any, row: dict[str, Any], upload_type: UploadType) -> None:
    """Copy canonical fields onto the record and keep the rest in ``extra``."""

    canonical = FIELD_ALIASES[upload_type.value]
    for field in canonical:
        if field in row:
            setattr(record, field, _column_value(field, row[field]))
    extra = {key: _json_safe(value) for key, value in row.items() if key not in canonical}
    record.extra = extra or None


class IngestionService:
    """Upload processing and record access for one showroom at a time."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ShowroomRepository(db)
        self.settings = get_settings()

    def _ensure_access(self, context: RequestUserContext, showroom_id: UUID, allowed_roles) -> None:
        ensure_showroom_exists(self.db, showroom_id)
        ensure_showroom_access(context, showroom_id, allowed_roles)

    @staticmethod
    def serialize_upload(uploaded_file: UploadedFile) -> dict[str, object]:
        return {
            "id": str(uploaded_file.id),
            "showroom_id": str(uploaded_file.showroom_id),
            "uploaded_by_id": str(uploaded_file.uploaded_by_id),
            "file_type": uploaded_file.file_type.value,
            "uploaded_file_name": uploaded_file.uploaded_file_name,
            "file_size": uploaded_file.file_size,
            "file_hash": uploaded_file.file_hash,
            "rows_count": uploaded_file.rows_count,
            "inserted_count": uploaded_file.inserted_count,
            "updated_count": uploaded_file.updated_count,
            "upload_case": uploaded_file.upload_case,
            "processing_status": uploaded_file.processing_status.value,
            "error_message": uploaded_file.error_message,
            "uploaded_at": uploaded_file.uploaded_at.isoformat(),
        }

    @staticmethod
    def serialize_record(record: Any) -> dict[str, object]:
        payload: dict[str, object] = {}
        for column in record.__table__.columns:
            value = getattr(record, column.key)
            if isinstance(value, UUID):
                value = str(value)
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            payload[column.key] = value
        return payload

    # ---------- Upload ----------
    def upload(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        upload_type: UploadType,
        filename: str,
        content: bytes,
    ) -> UploadResult:
        self._ensure_access(context, showroom_id, UPLOAD_ROLES)
        if len(content) > self.settings.upload_max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {self.settings.upload_max_bytes} byte upload limit.",
            )

        now = datetime.utcnow()
        uploaded_file = UploadedFile(
            showroom_id=showroom_id,
            uploaded_by_id=context.user_id,
            file_type=upload_type,
            uploaded_file_name=filename,
            file_size=len(content),
            file_hash=hashlib.md5(content).hexdigest(),
            processing_status=ProcessingStatus.PENDING,
            uploaded_at=now,
        )
        self.repo.add_uploaded_file(uploaded_file)
        self.db.commit()
        file_id = uploaded_file.id

        try:
            result = self._process(uploaded_file, filename=filename, content=content)
            self.db.commit()
        except UploadProcessingError as exc:
            self.db.rollback()
            self._mark_failed(file_id, str(exc))
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc
        except IntegrityError as exc:
            self.db.rollback()
            self._mark_failed(file_id, "Rows conflict with existing records.")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Uploaded rows conflict with existing records.",
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._mark_failed(file_id, "Rows could not be stored.")
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Uploaded rows contain values that cannot be stored.",
            ) from exc
        except Exception:
            self.db.rollback()
            self._mark_failed(file_id, "Unexpected error while processing the file.")
            raise

        self.db.refresh(result.uploaded_file)
        logger.info(
            "Upload %s (%s) for showroom %s: case=%s inserted=%s updated=%s",
            file_id,
            upload_type.value,
            showroom_id,
            result.upload_case,
            result.inserted_count,
            result.updated_count,
        )
        return result

    def _mark_failed(self, file_id: UUID, message: str) -> None:
        uploaded_file = self.repo.get_uploaded_file(file_id)
        if uploaded_file is None:
            return
        uploaded_file.processing_status = ProcessingStatus.FAILED
        uploaded_file.error_message = message[:2000]
        self.db.commit()
        logger.warning("Upload %s failed: %s", file_id, message)

    def _process(self, uploaded_file: UploadedFile, *, filename: str, content: bytes) -> UploadResult:
        upload_type = uploaded_file.file_type
        uploaded_file.processing_status = ProcessingStatus.PROCESSING
        self.db.flush()

        raw_rows = read_spreadsheet_rows(filename, content)
        if len(raw_rows) > self.settings.upload_max_rows:
            raise UploadProcessingError(f"File has more than {self.settings.upload_max_rows} rows.")

        rows = [normalize_record(row, upload_type.value) for row in raw_rows]
        uploaded_file.rows_count = len(rows)
        uploaded_file.file_hash = compute_file_hash(raw_rows, upload_type)

        key_field = UNIQUE_KEYS[upload_type.value]
        keyed_rows: dict[str, dict[str, Any]] = {}
        for row in rows:
            key = clean_text(row.get(key_field))
            if key:
                keyed_rows[key] = row
        if not keyed_rows:
            raise UploadProcessingError(f"No valid {key_field} found in uploaded data.")

        duplicate = self.repo.find_completed_upload_by_hash(
            showroom_id=uploaded_file.showroom_id,
            file_type=upload_type,
            file_hash=uploaded_file.file_hash,
        )
        existing = self.repo.records_by_key(upload_type, uploaded_file.showroom_id, key_field, keyed_rows.keys())
        if duplicate is not None:
            upload_case = CASE_DUPLICATE_FILE
        elif not existing:
            upload_case = CASE_NEW_FILE
        else:
            upload_case = CASE_MIXED_FILE

        advisor_map = {}
        if upload_type in ADVISOR_LINKED_TYPES:
            users = self.repo.list_showroom_users(uploaded_file.showroom_id)
            advisor_map = map_advisor_names(
                (clean_text(row.get("service_advisor")) for row in keyed_rows.values()),
                users,
            )

        model = RECORD_MODELS[upload_type]
        now = datetime.utcnow()
        inserted: list[Any] = []
        updated_count = 0
        for key, row in keyed_rows.items():
            record = existing.get(key)
            if record is None:
                record = model(showroom_id=uploaded_file.showroom_id, created_at=now)
                inserted.append(record)
            else:
                updated_count += 1
            apply_row(record, row, upload_type)
            setattr(record, key_field, key)
            record.uploaded_file_id = uploaded_file.id
            record.updated_at = now
            if upload_type in ADVISOR_LINKED_TYPES:
                advisor = advisor_map.get(clean_text(row.get("service_advisor")) or "")
                record.advisor_id = advisor.id if advisor is not None else None

        self.repo.add_records(inserted)
        if upload_type in MATCH_AFFECTING_TYPES:
            self.refresh_booking_matches(uploaded_file.showroom_id)

        uploaded_file.inserted_count = len(inserted)
        uploaded_file.updated_count = updated_count
        uploaded_file.upload_case = upload_case
        uploaded_file.processing_status = ProcessingStatus.COMPLETED
        uploaded_file.error_message = None
        self.db.flush()

        return UploadResult(
            uploaded_file=uploaded_file,
            upload_case=upload_case,
            inserted_count=len(inserted),
            updated_count=updated_count,
        )

    def refresh_booking_matches(self, showroom_id: UUID) -> int:
        """Recompute the stored ``matched`` flag of every booking in the showroom."""

        bookings: list[BookingRecord] = self.repo.list_records(UploadType.BOOKING_LIST, showroom_id)
        identifiers = billing_identifiers(
            [
                *self.repo.list_records(UploadType.RO_BILLING, showroom_id),
                *self.repo.list_records(UploadType.REPAIR_ORDER_LIST, showroom_id),
            ]
        )
        matched = 0
        for booking in bookings:
            booking.matched = is_matched(booking, identifiers)
            matched += int(booking.matched)
        self.db.flush()
        logger.info("Showroom %s booking matches refreshed: %s of %s", showroom_id, matched, len(bookings))
        return matched

    # ---------- History ----------
    def list_uploads(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        file_type: UploadType | None,
        limit: int | None,
    ) -> list[UploadedFile]:
        self._ensure_access(context, showroom_id, VIEW_ROLES)
        effective_limit = min(limit or self.settings.upload_history_limit, self.settings.upload_history_limit)
        return self.repo.list_uploads(showroom_id, file_type=file_type, limit=effective_limit)

    def upload_stats(self, *, context: RequestUserContext, showroom_id: UUID) -> dict[str, object]:
        self._ensure_access(context, showroom_id, VIEW_ROLES)

        stats: dict[str, dict[str, object]] = {
            upload_type.value: {
                "files": 0,
                "rows": 0,
                "completed": 0,
                "failed": 0,
                "records": self.repo.count_records(upload_type, showroom_id),
                "last_upload_at": None,
            }
            for upload_type in UploadType
        }
        for file_type, processing_status, files, rows in self.repo.upload_counts(showroom_id):
            entry = stats[file_type.value]
            entry["files"] = int(entry["files"]) + files
            entry["rows"] = int(entry["rows"]) + rows
            if processing_status == ProcessingStatus.COMPLETED:
                entry["completed"] = int(entry["completed"]) + files
            elif processing_status == ProcessingStatus.FAILED:
                entry["failed"] = int(entry["failed"]) + files

        for upload_type in UploadType:
            entry = stats[upload_type.value]
            if entry["files"]:
                last = self.repo.last_upload_at(showroom_id, upload_type)
                entry["last_upload_at"] = last.isoformat() if last is not None else None

        return {"showroom_id": str(showroom_id), "by_type": stats}

    def delete_upload(self, *, context: RequestUserContext, file_id: UUID) -> dict[str, object]:
        uploaded_file = self.repo.get_uploaded_file(file_id)
        if uploaded_file is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Uploaded file not found.")
        showroom_id = uploaded_file.showroom_id
        ensure_showroom_access(context, showroom_id, UPLOAD_ROLES)

        file_type = uploaded_file.file_type
        removed = self.repo.delete_uploaded_file(uploaded_file)
        if file_type in MATCH_AFFECTING_TYPES:
            self.refresh_booking_matches(showroom_id)
        self.db.commit()
        logger.info("Deleted upload %s with %s records", file_id, removed)
        return {"id": str(file_id), "deleted_records": removed}

    # ---------- Records ----------
    def list_records(
        self,
        *,
        context: RequestUserContext,
        showroom_id: UUID,
        data_type: str,
    ) -> list[dict[str, object]]:
        upload_type = DATA_TYPE_ALIASES.get(data_type.strip().lower())
        if upload_type is None:
            allowed = ", ".join(sorted(DATA_TYPE_ALIASES))
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"data_type must be one of: {allowed}.",
            )
        self._ensure_access(context, showroom_id, VIEW_ROLES)

        advisor_id = None
        if upload_type == UploadType.BOOKING_LIST and context.sees_only_own_bookings(showroom_id):
            advisor_id = context.user_id
        rows = self.repo.list_records(upload_type, showroom_id, advisor_id=advisor_id)
        return [self.serialize_record(row) for row in rows]
