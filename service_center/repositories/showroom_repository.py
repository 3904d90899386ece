"""Repository helpers for showroom-scoped uploads, records and targets."""

from __future__ import annotations

from datetime import date
from typing import Iterable
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from service_center.models.entities import (
    AdvisorTarget,
    BillingRecord,
    BookingRecord,
    CityTarget,
    OperationsRecord,
    ProcessingStatus,
    RepairOrderRecord,
    RoleAssignment,
    RoleType,
    Showroom,
    UploadedFile,
    UploadType,
    User,
    WarrantyRecord,
)

RecordModel = type[BillingRecord] | type[BookingRecord] | type[WarrantyRecord] | type[OperationsRecord] | type[RepairOrderRecord]

RECORD_MODELS: dict[UploadType, RecordModel] = {
    UploadType.RO_BILLING: BillingRecord,
    UploadType.WARRANTY: WarrantyRecord,
    UploadType.BOOKING_LIST: BookingRecord,
    UploadType.OPERATIONS_PART: OperationsRecord,
    UploadType.REPAIR_ORDER_LIST: RepairOrderRecord,
}


class ShowroomRepository:
    """Persistence operations used by ingestion, target and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Showrooms and people ----------
    def get_showroom(self, showroom_id: UUID) -> Showroom | None:
        return self.db.scalar(select(Showroom).where(Showroom.id == showroom_id))

    def list_showrooms(self, showroom_ids: Iterable[UUID] | None = None) -> list[Showroom]:
        stmt = select(Showroom).order_by(Showroom.city.asc(), Showroom.code.asc())
        if showroom_ids is not None:
            stmt = stmt.where(Showroom.id.in_(list(showroom_ids)))
        return self.db.scalars(stmt).all()

    def list_showroom_users(self, showroom_id: UUID, role: RoleType | None = None) -> list[User]:
        """Users with an active assignment in the showroom, optionally for one role."""

        conditions = [RoleAssignment.showroom_id == showroom_id, RoleAssignment.active.is_(True)]
        if role is not None:
            conditions.append(RoleAssignment.role == role)
        user_ids = select(RoleAssignment.user_id).where(and_(*conditions))
        return self.db.scalars(
            select(User).where(User.id.in_(user_ids)).order_by(User.display_name.asc())
        ).all()

    # ---------- Uploaded files ----------
    def add_uploaded_file(self, uploaded_file: UploadedFile) -> UploadedFile:
        self.db.add(uploaded_file)
        self.db.flush()
        return uploaded_file

    def get_uploaded_file(self, file_id: UUID) -> UploadedFile | None:
        return self.db.scalar(select(UploadedFile).where(UploadedFile.id == file_id))

    def find_completed_upload_by_hash(
        self,
        *,
        showroom_id: UUID,
        file_type: UploadType,
        file_hash: str,
    ) -> UploadedFile | None:
        return self.db.scalar(
            select(UploadedFile)
            .where(
                and_(
                    UploadedFile.showroom_id == showroom_id,
                    UploadedFile.file_type == file_type,
                    UploadedFile.file_hash == file_hash,
                    UploadedFile.processing_status == ProcessingStatus.COMPLETED,
                )
            )
            .order_by(UploadedFile.uploaded_at.desc())
            .limit(1)
        )

    def list_uploads(
        self,
        showroom_id: UUID,
        *,
        file_type: UploadType | None = None,
        limit: int = 50,
    ) -> list[UploadedFile]:
        stmt = select(UploadedFile).where(UploadedFile.showroom_id == showroom_id)
        if file_type is not None:
            stmt = stmt.where(UploadedFile.file_type == file_type)
        return self.db.scalars(stmt.order_by(UploadedFile.uploaded_at.desc()).limit(limit)).all()

    def upload_counts(self, showroom_id: UUID) -> list[tuple[UploadType, ProcessingStatus, int, int]]:
        """(file_type, status, files, rows) groups for one showroom."""

        rows = self.db.execute(
            select(
                UploadedFile.file_type,
                UploadedFile.processing_status,
                func.count(UploadedFile.id),
                func.coalesce(func.sum(UploadedFile.rows_count), 0),
            )
            .where(UploadedFile.showroom_id == showroom_id)
            .group_by(UploadedFile.file_type, UploadedFile.processing_status)
        ).all()
        return [(row[0], row[1], int(row[2]), int(row[3])) for row in rows]

    def last_upload_at(self, showroom_id: UUID, file_type: UploadType):
        return self.db.scalar(
            select(func.max(UploadedFile.uploaded_at)).where(
                and_(UploadedFile.showroom_id == showroom_id, UploadedFile.file_type == file_type)
            )
        )

    def delete_uploaded_file(self, uploaded_file: UploadedFile) -> int:
        """Delete a file and every record it wrote; returns the removed record count."""

        model = RECORD_MODELS[uploaded_file.file_type]
        result = self.db.execute(delete(model).where(model.uploaded_file_id == uploaded_file.id))
        self.db.delete(uploaded_file)
        self.db.flush()
        return int(result.rowcount or 0)

    # ---------- Records ----------
    def list_records(
        self,
        file_type: UploadType,
        showroom_id: UUID,
        *,
        advisor_id: UUID | None = None,
    ) -> list:
        model = RECORD_MODELS[file_type]
        stmt = select(model).where(model.showroom_id == showroom_id)
        if advisor_id is not None:
            stmt = stmt.where(model.advisor_id == advisor_id)
        return self.db.scalars(stmt.order_by(model.created_at.asc())).all()

    def records_by_key(self, file_type: UploadType, showroom_id: UUID, key_column: str, keys: Iterable[str]) -> dict:
        model = RECORD_MODELS[file_type]
        key_values = list(keys)
        if not key_values:
            return {}
        column = getattr(model, key_column)
        rows = self.db.scalars(
            select(model).where(and_(model.showroom_id == showroom_id, column.in_(key_values)))
        ).all()
        return {getattr(row, key_column): row for row in rows}

    def add_records(self, rows: list) -> None:
        self.db.add_all(rows)
        self.db.flush()

    def count_records(self, file_type: UploadType, showroom_id: UUID) -> int:
        model = RECORD_MODELS[file_type]
        return int(self.db.scalar(select(func.count(model.id)).where(model.showroom_id == showroom_id)) or 0)

    # ---------- Targets ----------
    def get_city_target(self, showroom_id: UUID, month_start: date) -> CityTarget | None:
        return self.db.scalar(
            select(CityTarget).where(
                and_(CityTarget.showroom_id == showroom_id, CityTarget.month_start == month_start)
            )
        )

    def add_city_target(self, target: CityTarget) -> CityTarget:
        self.db.add(target)
        self.db.flush()
        return target

    def list_advisor_targets(self, showroom_id: UUID, month_start: date) -> list[AdvisorTarget]:
        return self.db.scalars(
            select(AdvisorTarget)
            .where(and_(AdvisorTarget.showroom_id == showroom_id, AdvisorTarget.month_start == month_start))
            .order_by(AdvisorTarget.advisor_name.asc())
        ).all()

    def replace_advisor_targets(self, showroom_id: UUID, month_start: date, rows: list[AdvisorTarget]) -> None:
        self.db.execute(
            delete(AdvisorTarget).where(
                and_(AdvisorTarget.showroom_id == showroom_id, AdvisorTarget.month_start == month_start)
            )
        )
        self.db.add_all(rows)
        self.db.flush()
