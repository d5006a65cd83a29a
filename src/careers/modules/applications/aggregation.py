"""
Application Aggregation

Builds the cross-partition application list for the admin dashboard.

Each partition is queried concurrently in its own session with its own
timeout. A partition that fails or times out is logged and left out of the
result; the listing itself never fails because of one partition.
"""

import asyncio
import logging
import re
import unicodedata
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from careers.modules.applications.exceptions import (
    ApplicationValidationError,
    PartialAggregationFailure,
)
from careers.modules.applications.lifecycle import parse_application_id
from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.normalizer import normalize
from careers.modules.applications.partitions import (
    Partition,
    parse_partition,
    parse_source,
    partitions_for,
)
from careers.modules.applications.repository import (
    PartitionRepository,
    build_repositories,
    locate_application,
)
from careers.modules.applications.schemas import Application, ApplicationStats

logger = logging.getLogger(__name__)

DEFAULT_PARTITION_TIMEOUT_SECONDS = 5.0

SORT_FIELDS = ("submitted_at", "score", "degree", "name")
SORT_ORDERS = ("asc", "desc")

# Degree ranking used by the recruiters' listing, lowest first
_DEGREE_RANKS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("technicien", "technician"), 1),
    (("licence", "bachelor"), 2),
    (("ingenieur", "engineer"), 3),
    (("master",), 4),
    (("doctorat", "doctorate", "phd"), 5),
)
_UNRANKED_DEGREE = 6

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass
class AggregationResult:
    """Merged applications plus the partitions that could not be listed."""

    applications: list[Application] = field(default_factory=list)
    failures: list[PartialAggregationFailure] = field(default_factory=list)

    @property
    def unavailable_partitions(self) -> list[Partition]:
        return [failure.partition for failure in self.failures]


def parse_status_filter(value: Any) -> LifecycleStatus | None:
    """Parse an optional status filter; any lifecycle status is accepted."""
    if value is None or value == "":
        return None
    try:
        return LifecycleStatus(getattr(value, "value", value).strip().lower())
    except (AttributeError, ValueError) as e:
        valid = [status.value for status in LifecycleStatus]
        raise ApplicationValidationError(
            f"Invalid status filter: {value!r}. Expected one of {valid}"
        ) from e


def degree_rank(degree: str | None) -> int:
    """Rank of a free-text degree; unknown degrees sort last."""
    if not degree:
        return _UNRANKED_DEGREE
    # Strip accents so "ingénieur" and "ingenieur" rank alike
    folded = unicodedata.normalize("NFKD", degree).encode("ascii", "ignore").decode().lower()
    words = set(re.findall(r"[a-z]+", folded))
    for needles, rank in _DEGREE_RANKS:
        if any(needle in words for needle in needles):
            return rank
    return _UNRANKED_DEGREE


def _submitted_key(application: Application) -> datetime:
    submitted = application.submitted_at
    if submitted is None:
        return _EPOCH
    if submitted.tzinfo is None:
        return submitted.replace(tzinfo=UTC)
    return submitted


def filter_applications(
    applications: Iterable[Application],
    *,
    source: ApplicationSource | None = None,
    status: LifecycleStatus | None = None,
) -> list[Application]:
    """Keep applications matching the given source and status."""
    return [
        application
        for application in applications
        if (source is None or application.source == source)
        and (status is None or application.status == status)
    ]


def sort_applications(
    applications: Iterable[Application],
    sort_by: str = "submitted_at",
    sort_order: str = "desc",
) -> list[Application]:
    """
    Sort merged applications.

    `degree` orders by degree rank then years of experience, both following
    `sort_order`. Invalid sort fields or orders raise a validation error.
    """
    if sort_by not in SORT_FIELDS:
        raise ApplicationValidationError(
            f"Invalid sort_by: {sort_by!r}. Expected one of {list(SORT_FIELDS)}"
        )
    if sort_order not in SORT_ORDERS:
        raise ApplicationValidationError(
            f"Invalid sort_order: {sort_order!r}. Expected one of {list(SORT_ORDERS)}"
        )

    keys = {
        "submitted_at": lambda a: (_submitted_key(a), a.partition.value, a.id),
        "score": lambda a: (a.score, _submitted_key(a)),
        "degree": lambda a: (degree_rank(a.degree), a.experience_years),
        "name": lambda a: a.applicant_name.lower(),
    }
    return sorted(applications, key=keys[sort_by], reverse=sort_order == "desc")


def summarize(
    applications: Iterable[Application],
    unavailable: Iterable[Partition] = (),
) -> ApplicationStats:
    """Counts by source and status, plus the mean score."""
    applications = list(applications)
    by_source = Counter(application.source for application in applications)
    by_status = Counter(application.status for application in applications)
    average = (
        round(sum(application.score for application in applications) / len(applications), 1)
        if applications
        else 0.0
    )
    return ApplicationStats(
        total=len(applications),
        by_source={source: by_source.get(source, 0) for source in ApplicationSource},
        by_status={status: by_status.get(status, 0) for status in LifecycleStatus},
        average_score=average,
        unavailable_sources=list(unavailable),
    )


class AggregationQueryService:
    """Fan-out listing across all application partitions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repositories: Mapping[Partition, PartitionRepository] | None = None,
        timeout_seconds: float = DEFAULT_PARTITION_TIMEOUT_SECONDS,
    ):
        self._session_factory = session_factory
        self._repositories = repositories if repositories is not None else build_repositories()
        self._timeout_seconds = timeout_seconds

    async def _query_partition(self, repository: PartitionRepository) -> list[Application]:
        # AsyncSession is not safe for concurrent use, one session per partition
        async with self._session_factory() as session:
            records = await repository.list(session)
        return [normalize(record, repository.spec) for record in records]

    async def list_applications(
        self,
        *,
        source: Any = None,
        status: Any = None,
        sort_by: str = "submitted_at",
        sort_order: str = "desc",
    ) -> AggregationResult:
        """
        List applications from every partition, merged, filtered and sorted.

        Args:
            source: Optional source filter
            status: Optional lifecycle status filter
            sort_by: submitted_at | score | degree | name
            sort_order: asc | desc

        Returns:
            AggregationResult with the applications of every partition that
            answered in time and one failure entry per partition that did not
        """
        source_filter = parse_source(source) if source not in (None, "") else None
        status_filter = parse_status_filter(status)

        if source_filter is None:
            repositories = list(self._repositories.values())
        else:
            repositories = [
                self._repositories[spec.partition] for spec in partitions_for(source_filter)
            ]

        outcomes = await asyncio.gather(
            *(
                asyncio.wait_for(self._query_partition(repository), self._timeout_seconds)
                for repository in repositories
            ),
            return_exceptions=True,
        )

        result = AggregationResult()
        merged: list[Application] = []
        for repository, outcome in zip(repositories, outcomes, strict=True):
            partition = repository.spec.partition
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, TimeoutError):
                    outcome = TimeoutError(f"no answer within {self._timeout_seconds}s")
                failure = PartialAggregationFailure(partition, outcome)
                logger.warning(f"Omitting partition from listing: {failure.message}")
                result.failures.append(failure)
                continue
            merged.extend(outcome)

        filtered = filter_applications(merged, source=source_filter, status=status_filter)
        result.applications = sort_applications(filtered, sort_by, sort_order)

        logger.info(
            f"Listed {len(result.applications)} applications "
            f"(source={getattr(source_filter, 'value', None)}, "
            f"status={getattr(status_filter, 'value', None)}, "
            f"unavailable={[p.value for p in result.unavailable_partitions]})"
        )
        return result

    async def get_application(
        self,
        source: Any,
        application_id: Any,
        partition: Any = None,
    ) -> Application:
        """
        Get one application by identity.

        `partition` selects the storage partition when (source, id) is held
        by more than one.

        Raises:
            ApplicationValidationError: If the source tag, id or partition is
                malformed
            ApplicationNotFoundError: If no application matches
            AmbiguousApplicationError: If several partitions match and no
                partition was given
        """
        parsed_source = parse_source(source)
        parsed_id = parse_application_id(application_id)
        parsed_partition = parse_partition(partition)
        async with self._session_factory() as session:
            _, application = await locate_application(
                session, parsed_source, parsed_id, self._repositories, parsed_partition
            )
        return application

    async def get_stats(self) -> ApplicationStats:
        """Dashboard counts over the full listing."""
        result = await self.list_applications()
        return summarize(result.applications, result.unavailable_partitions)
