"""
Applications Models

Three storage partitions, one per intake channel. Each partition has its own
auto-increment id sequence, so ids are only unique within a partition.
The columns shared by every partition live in ApplicantColumnsMixin.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from careers.core.database import Base

# Imported so the job_openings table is registered for the foreign key below
from careers.modules.openings.models import JobOpening  # noqa: F401


class LifecycleStatus(str, enum.Enum):
    """Status of an application. ACCEPTED and REJECTED are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ApplicationSource(str, enum.Enum):
    """Intake channel an application is attributed to."""

    JOB_OPENING = "job_opening"
    INTERNSHIP = "internship"
    PFE = "pfe"
    SPONTANEOUS = "spontaneous"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class ApplicantColumnsMixin:
    """Columns common to every application partition."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Applicant
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)

    # Uploaded documents (paths relative to the uploads directory)
    cv_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cover_letter_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Background
    institution_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    degree: Mapped[str | None] = mapped_column(String(100), nullable=True)
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Skill ratings as submitted by the intake form. Older rows hold a
    # JSON-encoded string instead of an object.
    skills: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Status tracking
    status: Mapped[LifecycleStatus] = mapped_column(
        Enum(
            LifecycleStatus,
            name="lifecycle_status",
            values_callable=_enum_values,
            create_constraint=False,
        ),
        nullable=False,
        default=LifecycleStatus.PENDING,
        server_default=LifecycleStatus.PENDING.value,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    status_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            Index(f"ix_{cls.__tablename__}_status", "status"),
            Index(f"ix_{cls.__tablename__}_submitted_at", "submitted_at"),
        )


class JobApplication(ApplicantColumnsMixin, Base):
    """
    Application to a published opening.

    The linked opening's category decides whether the application counts as
    a job, internship or PFE application.
    """

    __tablename__ = "job_applications"

    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ON DELETE SET NULL: deleting an opening keeps its applications
    opening_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("job_openings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class InternshipApplication(ApplicantColumnsMixin, Base):
    """Internship application submitted through the internship form."""

    __tablename__ = "internship_applications"

    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    university: Mapped[str | None] = mapped_column(String(255), nullable=True)


class SpontaneousApplication(ApplicantColumnsMixin, Base):
    """Unsolicited application not tied to any opening."""

    __tablename__ = "spontaneous_applications"

    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Score computed by an older intake form; superseded by the derived score
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
