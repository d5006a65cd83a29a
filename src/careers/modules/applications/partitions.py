"""
Partition Registry

Single mapping between application sources and the storage partitions that
hold them. Nothing else in the package decides which table a source lives in.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from careers.core.database import Base
from careers.modules.applications.exceptions import ApplicationValidationError
from careers.modules.applications.models import (
    ApplicationSource,
    InternshipApplication,
    JobApplication,
    SpontaneousApplication,
)


class Partition(str, Enum):
    """Storage partitions (one table each)."""

    JOB = "job"
    INTERNSHIP = "internship"
    SPONTANEOUS = "spontaneous"


@dataclass(frozen=True)
class PartitionSpec:
    """
    Static description of one partition.

    Attributes:
        partition: Partition key
        model: ORM model backing the partition
        default_source: Source used when no linked opening says otherwise
        role_columns: Columns tried in order for the role/domain label
        joins_opening: Whether rows carry an opening reference to join
    """

    partition: Partition
    model: type[Base]
    default_source: ApplicationSource
    role_columns: tuple[str, ...]
    joins_opening: bool = False


PARTITIONS: dict[Partition, PartitionSpec] = {
    Partition.JOB: PartitionSpec(
        partition=Partition.JOB,
        model=JobApplication,
        default_source=ApplicationSource.JOB_OPENING,
        role_columns=("opening_title", "position", "position_type"),
        joins_opening=True,
    ),
    Partition.INTERNSHIP: PartitionSpec(
        partition=Partition.INTERNSHIP,
        model=InternshipApplication,
        default_source=ApplicationSource.INTERNSHIP,
        role_columns=("domain", "position"),
    ),
    Partition.SPONTANEOUS: PartitionSpec(
        partition=Partition.SPONTANEOUS,
        model=SpontaneousApplication,
        default_source=ApplicationSource.SPONTANEOUS,
        role_columns=("position", "domain"),
    ),
}

# Partitions that may hold each source, home partition first. Job-partition
# rows linked to an internship or PFE opening resolve to those sources, so
# ids are only unique per (source, partition).
SOURCE_PARTITIONS: dict[ApplicationSource, tuple[Partition, ...]] = {
    ApplicationSource.JOB_OPENING: (Partition.JOB,),
    ApplicationSource.PFE: (Partition.JOB,),
    ApplicationSource.INTERNSHIP: (Partition.INTERNSHIP, Partition.JOB),
    ApplicationSource.SPONTANEOUS: (Partition.SPONTANEOUS,),
}

# Tags used by the legacy admin front-end
_SOURCE_ALIASES: dict[str, ApplicationSource] = {
    "emploi": ApplicationSource.JOB_OPENING,
    "job": ApplicationSource.JOB_OPENING,
    "stage": ApplicationSource.INTERNSHIP,
    "spontanee": ApplicationSource.SPONTANEOUS,
}


def parse_source(value: Any) -> ApplicationSource:
    """
    Parse a source tag.

    Raises:
        ApplicationValidationError: If the value names no known source
    """
    if isinstance(value, ApplicationSource):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        try:
            return ApplicationSource(key)
        except ValueError:
            if key in _SOURCE_ALIASES:
                return _SOURCE_ALIASES[key]
    valid = [source.value for source in ApplicationSource]
    raise ApplicationValidationError(f"Invalid application source: {value!r}. Expected one of {valid}")


def parse_partition(value: Any) -> Partition | None:
    """
    Parse an optional partition key.

    Raises:
        ApplicationValidationError: If the value names no known partition
    """
    if value is None or value == "":
        return None
    if isinstance(value, Partition):
        return value
    if isinstance(value, str):
        try:
            return Partition(value.strip().lower())
        except ValueError:
            pass
    valid = [partition.value for partition in Partition]
    raise ApplicationValidationError(f"Invalid partition: {value!r}. Expected one of {valid}")


def partitions_for(
    source: ApplicationSource,
    partition: Partition | None = None,
) -> tuple[PartitionSpec, ...]:
    """
    Specs of the partitions that may hold `source`, home partition first.

    With `partition`, only that partition is returned.

    Raises:
        ApplicationValidationError: If `partition` never holds `source`
    """
    candidates = SOURCE_PARTITIONS[source]
    if partition is None:
        return tuple(PARTITIONS[p] for p in candidates)
    if partition not in candidates:
        raise ApplicationValidationError(
            f"Source {source.value!r} is not stored in partition {partition.value!r}"
        )
    return (PARTITIONS[partition],)
