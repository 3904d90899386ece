"""access constraints and non-negative target checks

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_check_constraint(
        "ck_role_assignments_scope_matches_role",
        "role_assignments",
        "((role = 'owner' AND showroom_id IS NULL) "
        "OR (role <> 'owner' AND showroom_id IS NOT NULL))",
    )
    op.create_unique_constraint(
        "uq_role_assignments_user_role_showroom",
        "role_assignments",
        ["user_id", "role", "showroom_id"],
    )

    op.execute(
        """
        CREATE UNIQUE INDEX uq_role_assignments_user_role_global
        ON role_assignments (user_id, role)
        WHERE showroom_id IS NULL
        """
    )
    op.create_index("ix_role_assignments_showroom_active", "role_assignments", ["showroom_id", "active"])

    op.create_check_constraint(
        "ck_uploaded_files_rows_count_non_negative",
        "uploaded_files",
        "rows_count >= 0",
    )
    op.create_check_constraint(
        "ck_city_targets_labour_non_negative",
        "city_targets",
        "labour >= 0",
    )
    op.create_check_constraint(
        "ck_city_targets_parts_non_negative",
        "city_targets",
        "parts >= 0",
    )


def downgrade() -> None:
    op.drop_constraint("ck_city_targets_parts_non_negative", "city_targets", type_="check")
    op.drop_constraint("ck_city_targets_labour_non_negative", "city_targets", type_="check")
    op.drop_constraint("ck_uploaded_files_rows_count_non_negative", "uploaded_files", type_="check")

    op.drop_index("ix_role_assignments_showroom_active", table_name="role_assignments")
    op.execute("DROP INDEX IF EXISTS uq_role_assignments_user_role_global")
    op.drop_constraint("uq_role_assignments_user_role_showroom", "role_assignments", type_="unique")
    op.drop_constraint("ck_role_assignments_scope_matches_role", "role_assignments", type_="check")
