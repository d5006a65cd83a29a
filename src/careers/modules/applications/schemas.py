"""
Applications Schemas

Canonical application shape produced by the normalizer, plus the request and
response bodies of the admin API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.partitions import Partition


class Application(BaseModel):
    """
    Canonical, source-agnostic application.

    Identity is (source, id). Internship ids can repeat across the internship
    and job partitions, so `partition` is part of the address when deciding.
    Per-source fields (domain, duration, university, opening) are None when
    the partition has no such column.
    """

    model_config = ConfigDict(frozen=True)

    # Identity
    source: ApplicationSource = Field(..., description="Resolved intake channel")
    id: int = Field(..., description="Id local to the storage partition")
    partition: Partition = Field(..., description="Storage partition holding the row")

    # Applicant
    applicant_name: str = Field(..., description="Display name")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None

    # Role and background
    role_label: str = Field(..., description="Position or domain applied for")
    degree: str = "Not specified"
    experience_years: int = Field(0, ge=0)
    institution_type: str | None = None

    # Skills
    skills: dict[str, Any] = Field(default_factory=dict, description="Raw skill ratings")
    score: int = Field(0, ge=0, le=100, description="Derived competence score")

    # Lifecycle
    status: LifecycleStatus = LifecycleStatus.PENDING
    submitted_at: datetime | None = None
    status_updated_at: datetime | None = None

    # Linked opening (job partition only)
    opening_id: int | None = None
    opening_title: str | None = None

    # Internship / spontaneous details
    domain: str | None = None
    duration: str | None = None
    university: str | None = None

    # Documents
    cv_url: str | None = None
    cover_letter_url: str | None = None


class ApplicationListResponse(BaseModel):
    """Response for the cross-partition listing."""

    applications: list[Application]
    total: int = Field(..., description="Number of applications returned")
    unavailable_sources: list[Partition] = Field(
        default_factory=list,
        description="Partitions that could not be queried and are missing from the list",
    )


class ApplicationStats(BaseModel):
    """Dashboard counts over the merged listing."""

    total: int
    by_source: dict[ApplicationSource, int]
    by_status: dict[LifecycleStatus, int]
    average_score: float = Field(..., description="Mean competence score, 0 when empty")
    unavailable_sources: list[Partition] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    """Request body for deciding an application."""

    status: str = Field(
        ...,
        description="Target status: 'accepted' or 'rejected'",
        json_schema_extra={"example": "accepted"},
    )


class StatusUpdateResponse(BaseModel):
    """Response after deciding an application."""

    application: Application
    message: str = Field(
        default="Status updated; the applicant will be notified by email",
        description="Success message",
    )
