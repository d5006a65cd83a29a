"""
Intake Normalizer

Shapes one raw partition row (plus the opening it links to, if any) into a
canonical Application. Pure transformation: rows are read, never modified,
and no I/O happens here.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.partitions import PartitionSpec
from careers.modules.applications.schemas import Application
from careers.modules.applications.scoring import compute_score

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

# Substrings of an opening category, checked in order
_CATEGORY_SOURCES: tuple[tuple[tuple[str, ...], ApplicationSource], ...] = (
    (("stage",), ApplicationSource.INTERNSHIP),
    (("pfe",), ApplicationSource.PFE),
    (("cdi", "cdd"), ApplicationSource.JOB_OPENING),
)

@dataclass(frozen=True)
class RawRecord:
    """A partition row as read from storage, with its joined opening."""

    row: Mapping[str, Any]
    opening: Mapping[str, Any] | None = None


def parse_skills(raw: Any) -> dict[str, Any]:
    """
    Accept skill data stored as None, a JSON string or a mapping.

    Unparseable strings and JSON values that are not objects yield an
    empty map. The input is never modified; a new dict is returned.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring unparseable skill data")
            return {}
        if isinstance(parsed, Mapping):
            return dict(parsed)
        return {}
    return {}


def resolve_source(spec: PartitionSpec, opening: Mapping[str, Any] | None) -> ApplicationSource:
    """
    Resolve the source of a row from its opening's category text.

    Falls back to the partition's default source when there is no opening
    or the category names no known contract type.
    """
    category = (opening or {}).get("category")
    if category:
        category_lower = str(category).lower()
        for needles, source in _CATEGORY_SOURCES:
            if any(needle in category_lower for needle in needles):
                return source
    return spec.default_source


def display_name(row: Mapping[str, Any]) -> str:
    """First and last name joined, skipping missing parts."""
    parts = [str(row.get(key) or "").strip() for key in ("first_name", "last_name")]
    return " ".join(part for part in parts if part)


def file_url(path: str | None) -> str | None:
    """Public URL for an uploaded document path."""
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    filename = PurePosixPath(path.replace("\\", "/")).name
    return f"/uploads/{filename}"


def _experience_years(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        years = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, years)


def _status(value: Any, application_id: Any) -> LifecycleStatus:
    if value is None:
        return LifecycleStatus.PENDING
    try:
        return LifecycleStatus(getattr(value, "value", value))
    except ValueError:
        # Shown as pending; the conditional update will not match it
        logger.warning(
            f"Unknown status {value!r} on application {application_id}; treating as pending"
        )
        return LifecycleStatus.PENDING


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _role_label(spec: PartitionSpec, values: Mapping[str, Any]) -> str:
    for column in spec.role_columns:
        label = _text(values.get(column))
        if label:
            return label
    return NOT_SPECIFIED


def normalize(record: RawRecord, spec: PartitionSpec) -> Application:
    """
    Build the canonical Application for one raw row.

    Args:
        record: Row mapping and optional joined opening mapping
        spec: Partition the row was read from

    Returns:
        Application with resolved source and derived score
    """
    row = record.row
    opening = record.opening

    skills = parse_skills(row.get("skills"))
    opening_title = _text((opening or {}).get("title"))
    # Role lookup sees the opening title next to the row's own columns
    role_values = {**row, "opening_title": opening_title}

    return Application(
        source=resolve_source(spec, opening),
        id=row["id"],
        partition=spec.partition,
        applicant_name=display_name(row),
        first_name=_text(row.get("first_name")),
        last_name=_text(row.get("last_name")),
        email=_text(row.get("email")),
        phone=_text(row.get("phone")),
        role_label=_role_label(spec, role_values),
        degree=_text(row.get("degree")) or NOT_SPECIFIED,
        experience_years=_experience_years(row.get("experience")),
        institution_type=_text(row.get("institution_type")),
        skills=skills,
        score=compute_score(skills),
        status=_status(row.get("status"), row["id"]),
        submitted_at=row.get("submitted_at"),
        status_updated_at=row.get("status_updated_at"),
        opening_id=row.get("opening_id"),
        opening_title=opening_title,
        domain=_text(row.get("domain")),
        duration=_text(row.get("duration")),
        university=_text(row.get("university")),
        cv_url=file_url(row.get("cv_path")),
        cover_letter_url=file_url(row.get("cover_letter_path")),
    )
