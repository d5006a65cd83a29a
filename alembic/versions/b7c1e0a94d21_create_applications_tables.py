"""create job openings and application partition tables

Revision ID: b7c1e0a94d21
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "b7c1e0a94d21"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Created once, shared by the three partition tables
lifecycle_status = postgresql.ENUM(
    "pending", "accepted", "rejected", name="lifecycle_status", create_type=False
)


def _status_type() -> sa.types.TypeEngine:
    return sa.String(20).with_variant(lifecycle_status, "postgresql")


def _applicant_columns() -> list[sa.Column]:
    """Columns shared by every application partition."""
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("cv_path", sa.String(500), nullable=True),
        sa.Column("cover_letter_path", sa.String(500), nullable=True),
        sa.Column("institution_type", sa.String(100), nullable=True),
        sa.Column("degree", sa.String(100), nullable=True),
        sa.Column("experience", sa.Integer(), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=True),
        sa.Column("status", _status_type(), nullable=False, server_default="pending"),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _create_partition(table_name: str, *columns: sa.Column) -> None:
    op.create_table(table_name, *_applicant_columns(), *columns)
    op.create_index(f"ix_{table_name}_status", table_name, ["status"])
    op.create_index(f"ix_{table_name}_submitted_at", table_name, ["submitted_at"])


def upgrade() -> None:
    """Create job_openings, the three application partitions and lifecycle_status."""
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        lifecycle_status.create(bind, checkfirst=True)

    op.create_table(
        "job_openings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("salary", sa.String(100), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("expires_at", sa.Date(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    _create_partition(
        "job_applications",
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("position_type", sa.String(100), nullable=True),
        sa.Column(
            "opening_id",
            sa.Integer(),
            sa.ForeignKey("job_openings.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_job_applications_opening_id", "job_applications", ["opening_id"])

    _create_partition(
        "internship_applications",
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("duration", sa.String(100), nullable=True),
        sa.Column("university", sa.String(255), nullable=True),
    )

    _create_partition(
        "spontaneous_applications",
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("duration", sa.String(100), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
    )


def downgrade() -> None:
    """Drop the application tables, job_openings and lifecycle_status."""
    for table_name in (
        "spontaneous_applications",
        "internship_applications",
        "job_applications",
    ):
        op.drop_table(table_name)
    op.drop_table("job_openings")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        lifecycle_status.drop(bind, checkfirst=True)
