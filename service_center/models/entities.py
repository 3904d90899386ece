"""ORM entities for the service center schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from service_center.db.base import Base


class RoleType(str, enum.Enum):
    OWNER = "owner"
    GENERAL_MANAGER = "general_manager"
    SERVICE_MANAGER = "service_manager"
    SERVICE_ADVISOR = "service_advisor"
    BODY_SHOP_MANAGER = "body_shop_manager"


class UploadType(str, enum.Enum):
    RO_BILLING = "ro_billing"
    WARRANTY = "warranty"
    BOOKING_LIST = "booking_list"
    OPERATIONS_PART = "operations_part"
    REPAIR_ORDER_LIST = "repair_order_list"


class ProcessingStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DistributionMode(str, enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> SQLEnum:
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Showroom(Base):
    __tablename__ = "showrooms"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(128), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class RoleAssignment(Base):
    __tablename__ = "role_assignments"
    __table_args__ = (
        CheckConstraint(
            "((role = 'owner' AND showroom_id IS NULL) "
            "OR (role <> 'owner' AND showroom_id IS NOT NULL))",
            name="ck_role_assignments_scope_matches_role",
        ),
        UniqueConstraint("user_id", "role", "showroom_id", name="uq_role_assignments_user_role_showroom"),
        Index(
            "uq_role_assignments_user_role_global",
            "user_id",
            "role",
            unique=True,
            postgresql_where=text("showroom_id IS NULL"),
            sqlite_where=text("showroom_id IS NULL"),
        ),
        Index("ix_role_assignments_user_id", "user_id"),
        Index("ix_role_assignments_showroom_active", "showroom_id", "active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    showroom_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=True
    )
    role: Mapped[RoleType] = mapped_column(_enum_column(RoleType, "role_type"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class UploadedFile(Base):
    __tablename__ = "uploaded_files"
    __table_args__ = (
        CheckConstraint("rows_count >= 0", name="ck_uploaded_files_rows_count_non_negative"),
        Index("ix_uploaded_files_showroom_uploaded_at", "showroom_id", "uploaded_at"),
        Index("ix_uploaded_files_type_showroom", "file_type", "showroom_id"),
        Index("ix_uploaded_files_hash", "file_hash"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_by_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    file_type: Mapped[UploadType] = mapped_column(_enum_column(UploadType, "upload_type"), nullable=False)
    uploaded_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    rows_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inserted_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    upload_case: Mapped[str | None] = mapped_column(String(32), nullable=True)
    processing_status: Mapped[ProcessingStatus] = mapped_column(
        _enum_column(ProcessingStatus, "processing_status"),
        nullable=False,
        default=ProcessingStatus.PENDING,
    )
    error_message: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class BillingRecord(Base):
    __tablename__ = "billing_records"
    __table_args__ = (
        UniqueConstraint("showroom_id", "ro_number", name="uq_billing_records_showroom_ro_number"),
        Index("ix_billing_records_showroom_advisor", "showroom_id", "service_advisor"),
        Index("ix_billing_records_uploaded_file_id", "uploaded_file_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("uploaded_files.id"), nullable=False
    )
    ro_number: Mapped[str] = mapped_column(String(64), nullable=False)
    bill_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    service_advisor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    advisor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    labour_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    part_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    work_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    vehicle_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    extra: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class RepairOrderRecord(Base):
    __tablename__ = "repair_order_records"
    __table_args__ = (
        UniqueConstraint("showroom_id", "ro_number", name="uq_repair_order_records_showroom_ro_number"),
        Index("ix_repair_order_records_uploaded_file_id", "uploaded_file_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("uploaded_files.id"), nullable=False
    )
    ro_number: Mapped[str] = mapped_column(String(64), nullable=False)
    ro_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    service_advisor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    advisor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    vin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vehicle_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    work_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    extra: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class BookingRecord(Base):
    __tablename__ = "booking_records"
    __table_args__ = (
        UniqueConstraint("showroom_id", "reg_no", name="uq_booking_records_showroom_reg_no"),
        Index("ix_booking_records_showroom_advisor", "showroom_id", "service_advisor"),
        Index("ix_booking_records_advisor_id", "advisor_id"),
        Index("ix_booking_records_uploaded_file_id", "uploaded_file_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("uploaded_files.id"), nullable=False
    )
    reg_no: Mapped[str] = mapped_column(String(64), nullable=False)
    vin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    service_advisor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    advisor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    bt_date_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    work_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    booking_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    booking_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    extra: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class WarrantyRecord(Base):
    __tablename__ = "warranty_records"
    __table_args__ = (
        UniqueConstraint("showroom_id", "claim_number", name="uq_warranty_records_showroom_claim_number"),
        Index("ix_warranty_records_uploaded_file_id", "uploaded_file_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("uploaded_files.id"), nullable=False
    )
    claim_number: Mapped[str] = mapped_column(String(64), nullable=False)
    ro_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    claim_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    claim_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    labour_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    part_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    vehicle_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    extra: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class OperationsRecord(Base):
    __tablename__ = "operations_records"
    __table_args__ = (
        UniqueConstraint("showroom_id", "op_part_code", name="uq_operations_records_showroom_code"),
        Index("ix_operations_records_uploaded_file_id", "uploaded_file_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    uploaded_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("uploaded_files.id"), nullable=False
    )
    op_part_code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    count: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    labour_time: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    extra: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class CityTarget(Base):
    __tablename__ = "city_targets"
    __table_args__ = (
        CheckConstraint("labour >= 0", name="ck_city_targets_labour_non_negative"),
        CheckConstraint("parts >= 0", name="ck_city_targets_parts_non_negative"),
        UniqueConstraint("showroom_id", "month_start", name="uq_city_targets_showroom_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    month_start: Mapped[date] = mapped_column(Date, nullable=False)
    labour: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    parts: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_vehicles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_service: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    free_service: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rr: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class AdvisorTarget(Base):
    __tablename__ = "advisor_targets"
    __table_args__ = (
        Index("ix_advisor_targets_showroom_month", "showroom_id", "month_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showroom_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("showrooms.id"), nullable=False)
    month_start: Mapped[date] = mapped_column(Date, nullable=False)
    advisor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    advisor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    mode: Mapped[DistributionMode] = mapped_column(
        _enum_column(DistributionMode, "distribution_mode"), nullable=False
    )
    labour: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    parts: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_vehicles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_service: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    free_service: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rr: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
