"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


role_type = postgresql.ENUM(
    "owner",
    "general_manager",
    "service_manager",
    "service_advisor",
    "body_shop_manager",
    name="role_type",
    create_type=False,
)
upload_type = postgresql.ENUM(
    "ro_billing",
    "warranty",
    "booking_list",
    "operations_part",
    "repair_order_list",
    name="upload_type",
    create_type=False,
)
processing_status = postgresql.ENUM(
    "pending", "processing", "completed", "failed", name="processing_status", create_type=False
)
distribution_mode = postgresql.ENUM("automatic", "manual", name="distribution_mode", create_type=False)


def _record_columns() -> list[sa.Column]:
    """Columns every uploaded record table starts with."""

    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("showroom_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("showrooms.id"), nullable=False),
        sa.Column(
            "uploaded_file_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uploaded_files.id"),
            nullable=False,
        ),
    ]


def _record_trailer() -> list[sa.Column]:
    return [
        sa.Column("extra", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=False, server_default=sa.text("0"))


def _target_columns() -> list[sa.Column]:
    return [
        _money("labour"),
        _money("parts"),
        sa.Column("total_vehicles", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_service", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("free_service", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rr", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    role_type.create(op.get_bind(), checkfirst=True)
    upload_type.create(op.get_bind(), checkfirst=True)
    processing_status.create(op.get_bind(), checkfirst=True)
    distribution_mode.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "showrooms",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=128), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "role_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("showroom_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("showrooms.id"), nullable=True),
        sa.Column("role", role_type, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_role_assignments_user_id", "role_assignments", ["user_id"])

    op.create_table(
        "uploaded_files",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("showroom_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("showrooms.id"), nullable=False),
        sa.Column("uploaded_by_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_type", upload_type, nullable=False),
        sa.Column("uploaded_file_name", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("file_hash", sa.String(length=64), nullable=False),
        sa.Column("rows_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("inserted_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("upload_case", sa.String(length=32), nullable=True),
        sa.Column("processing_status", processing_status, nullable=False),
        sa.Column("error_message", sa.String(length=2000), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_uploaded_files_showroom_uploaded_at", "uploaded_files", ["showroom_id", "uploaded_at"])
    op.create_index("ix_uploaded_files_type_showroom", "uploaded_files", ["file_type", "showroom_id"])
    op.create_index("ix_uploaded_files_hash", "uploaded_files", ["file_hash"])

    op.create_table(
        "billing_records",
        *_record_columns(),
        sa.Column("ro_number", sa.String(length=64), nullable=False),
        sa.Column("bill_date", sa.String(length=64), nullable=True),
        sa.Column("service_advisor", sa.String(length=255), nullable=True),
        sa.Column("advisor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        _money("labour_amount"),
        _money("part_amount"),
        _money("total_amount"),
        sa.Column("work_type", sa.String(length=128), nullable=True),
        sa.Column("vehicle_number", sa.String(length=64), nullable=True),
        sa.Column("vin", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        *_record_trailer(),
    )
    op.create_unique_constraint(
        "uq_billing_records_showroom_ro_number", "billing_records", ["showroom_id", "ro_number"]
    )
    op.create_index("ix_billing_records_showroom_advisor", "billing_records", ["showroom_id", "service_advisor"])
    op.create_index("ix_billing_records_uploaded_file_id", "billing_records", ["uploaded_file_id"])

    op.create_table(
        "repair_order_records",
        *_record_columns(),
        sa.Column("ro_number", sa.String(length=64), nullable=False),
        sa.Column("ro_date", sa.String(length=64), nullable=True),
        sa.Column("service_advisor", sa.String(length=255), nullable=True),
        sa.Column("advisor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("vin", sa.String(length=64), nullable=True),
        sa.Column("vehicle_number", sa.String(length=64), nullable=True),
        sa.Column("work_type", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        *_record_trailer(),
    )
    op.create_unique_constraint(
        "uq_repair_order_records_showroom_ro_number", "repair_order_records", ["showroom_id", "ro_number"]
    )
    op.create_index("ix_repair_order_records_uploaded_file_id", "repair_order_records", ["uploaded_file_id"])

    op.create_table(
        "booking_records",
        *_record_columns(),
        sa.Column("reg_no", sa.String(length=64), nullable=False),
        sa.Column("vin", sa.String(length=64), nullable=True),
        sa.Column("service_advisor", sa.String(length=255), nullable=True),
        sa.Column("advisor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("bt_date_time", sa.String(length=64), nullable=True),
        sa.Column("work_type", sa.String(length=128), nullable=True),
        sa.Column("booking_status", sa.String(length=64), nullable=True),
        sa.Column("booking_number", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("matched", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_record_trailer(),
    )
    op.create_unique_constraint("uq_booking_records_showroom_reg_no", "booking_records", ["showroom_id", "reg_no"])
    op.create_index("ix_booking_records_showroom_advisor", "booking_records", ["showroom_id", "service_advisor"])
    op.create_index("ix_booking_records_advisor_id", "booking_records", ["advisor_id"])
    op.create_index("ix_booking_records_uploaded_file_id", "booking_records", ["uploaded_file_id"])

    op.create_table(
        "warranty_records",
        *_record_columns(),
        sa.Column("claim_number", sa.String(length=64), nullable=False),
        sa.Column("ro_number", sa.String(length=64), nullable=True),
        sa.Column("claim_date", sa.String(length=64), nullable=True),
        sa.Column("claim_type", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=64), nullable=True),
        _money("labour_amount"),
        _money("part_amount"),
        sa.Column("vehicle_number", sa.String(length=64), nullable=True),
        *_record_trailer(),
    )
    op.create_unique_constraint(
        "uq_warranty_records_showroom_claim_number", "warranty_records", ["showroom_id", "claim_number"]
    )
    op.create_index("ix_warranty_records_uploaded_file_id", "warranty_records", ["uploaded_file_id"])

    op.create_table(
        "operations_records",
        *_record_columns(),
        sa.Column("op_part_code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        _money("count"),
        _money("amount"),
        sa.Column("labour_time", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        *_record_trailer(),
    )
    op.create_unique_constraint(
        "uq_operations_records_showroom_code", "operations_records", ["showroom_id", "op_part_code"]
    )
    op.create_index("ix_operations_records_uploaded_file_id", "operations_records", ["uploaded_file_id"])

    op.create_table(
        "city_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("showroom_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("showrooms.id"), nullable=False),
        sa.Column("month_start", sa.Date(), nullable=False),
        *_target_columns(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_unique_constraint("uq_city_targets_showroom_month", "city_targets", ["showroom_id", "month_start"])

    op.create_table(
        "advisor_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("showroom_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("showrooms.id"), nullable=False),
        sa.Column("month_start", sa.Date(), nullable=False),
        sa.Column("advisor_name", sa.String(length=255), nullable=False),
        sa.Column("advisor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("mode", distribution_mode, nullable=False),
        *_target_columns(),
    )
    op.create_index("ix_advisor_targets_showroom_month", "advisor_targets", ["showroom_id", "month_start"])


def downgrade() -> None:
    op.drop_index("ix_advisor_targets_showroom_month", table_name="advisor_targets")
    op.drop_table("advisor_targets")
    op.drop_table("city_targets")

    for table in (
        "operations_records",
        "warranty_records",
        "booking_records",
        "repair_order_records",
        "billing_records",
    ):
        op.drop_table(table)

    op.drop_index("ix_uploaded_files_hash", table_name="uploaded_files")
    op.drop_index("ix_uploaded_files_type_showroom", table_name="uploaded_files")
    op.drop_index("ix_uploaded_files_showroom_uploaded_at", table_name="uploaded_files")
    op.drop_table("uploaded_files")

    op.drop_index("ix_role_assignments_user_id", table_name="role_assignments")
    op.drop_table("role_assignments")
    op.drop_table("users")
    op.drop_table("showrooms")

    distribution_mode.drop(op.get_bind(), checkfirst=True)
    processing_status.drop(op.get_bind(), checkfirst=True)
    upload_type.drop(op.get_bind(), checkfirst=True)
    role_type.drop(op.get_bind(), checkfirst=True)
