"""
Applications Repository

Database operations for the three application partitions. One
PartitionRepository instance serves one partition; all instances share the
same interface so the lifecycle and aggregation services never branch on
the table they are talking to.

Design Principles:
- All queries are parameterized (no SQL injection)
- Rows are returned as plain mappings for the normalizer, not ORM objects
- Status changes are conditional single-statement updates
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from careers.modules.applications.exceptions import (
    AmbiguousApplicationError,
    ApplicationNotFoundError,
)
from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.normalizer import RawRecord, normalize
from careers.modules.applications.partitions import (
    PARTITIONS,
    Partition,
    PartitionSpec,
    partitions_for,
)
from careers.modules.applications.schemas import Application
from careers.modules.openings.models import JobOpening

logger = logging.getLogger(__name__)

# Prefix of the joined opening columns in a job partition row
_OPENING_PREFIX = "opening__"


class PartitionRepository:
    """Storage operations for one application partition."""

    def __init__(self, spec: PartitionSpec):
        self.spec = spec
        self.model = spec.model

    def __repr__(self) -> str:
        return f"PartitionRepository({self.spec.partition.value})"

    def _select(self) -> Select:
        table = self.model.__table__
        if not self.spec.joins_opening:
            return select(table)

        return select(
            table,
            JobOpening.id.label(f"{_OPENING_PREFIX}id"),
            JobOpening.title.label(f"{_OPENING_PREFIX}title"),
            JobOpening.category.label(f"{_OPENING_PREFIX}category"),
            JobOpening.expires_at.label(f"{_OPENING_PREFIX}expires_at"),
        ).outerjoin(JobOpening, table.c.opening_id == JobOpening.id)

    @staticmethod
    def _to_record(mapping: Mapping[str, Any]) -> RawRecord:
        row: dict[str, Any] = {}
        opening: dict[str, Any] = {}
        for key, value in mapping.items():
            if key.startswith(_OPENING_PREFIX):
                opening[key[len(_OPENING_PREFIX) :]] = value
            else:
                row[key] = value

        # Outer join with no linked opening yields an all-NULL opening
        if opening.get("id") is None:
            return RawRecord(row=row, opening=None)
        return RawRecord(row=row, opening=opening)

    async def create(self, db: AsyncSession, **fields: Any) -> RawRecord:
        """
        Insert a new application row.

        Args:
            db: Database session
            **fields: Column values for the partition's model

        Returns:
            The stored row as a RawRecord (with its opening, if linked)
        """
        instance = self.model(**fields)
        db.add(instance)
        await db.commit()
        await db.refresh(instance)

        logger.info(f"Created {self.spec.partition.value} application {instance.id}")
        record = await self.read(db, instance.id)
        if record is None:
            raise ApplicationNotFoundError(self.spec.default_source, instance.id)
        return record

    async def read(self, db: AsyncSession, application_id: int) -> RawRecord | None:
        """Get one row by its partition-local id."""
        table = self.model.__table__
        result = await db.execute(self._select().where(table.c.id == application_id))
        mapping = result.mappings().one_or_none()
        if mapping is None:
            return None
        return self._to_record(mapping)

    async def list(self, db: AsyncSession) -> list[RawRecord]:
        """Get every row of the partition, newest first."""
        table = self.model.__table__
        result = await db.execute(
            self._select().order_by(table.c.submitted_at.desc(), table.c.id.desc())
        )
        return [self._to_record(mapping) for mapping in result.mappings().all()]

    async def update_status(
        self,
        db: AsyncSession,
        application_id: int,
        expected: LifecycleStatus,
        new: LifecycleStatus,
    ) -> bool:
        """
        Conditionally update an application's status.

        The update only applies while the stored status still equals
        `expected`; the statement is committed before returning.

        Args:
            db: Database session
            application_id: Partition-local id
            expected: Status the row must currently have
            new: Status to store

        Returns:
            True if the row was updated, False if it was missing or no longer
            in the expected status
        """
        table = self.model.__table__
        stmt = (
            update(table)
            .where(table.c.id == application_id, table.c.status == expected)
            .values(status=new, status_updated_at=datetime.now(UTC))
        )
        result = await db.execute(stmt)
        await db.commit()

        applied = result.rowcount == 1
        if not applied:
            logger.debug(
                f"Conditional status update not applied: {self.spec.partition.value}/"
                f"{application_id} expected={expected.value} new={new.value}"
            )
        return applied


def build_repositories() -> dict[Partition, PartitionRepository]:
    """One repository per registered partition."""
    return {partition: PartitionRepository(spec) for partition, spec in PARTITIONS.items()}


async def locate_application(
    db: AsyncSession,
    source: ApplicationSource,
    application_id: int,
    repositories: Mapping[Partition, PartitionRepository],
    partition: Partition | None = None,
) -> tuple[PartitionRepository, Application]:
    """
    Find the application identified by (source, id).

    Every candidate partition for the source is read (only `partition` when
    given) and the row whose resolved source equals `source` is returned.

    Raises:
        ApplicationValidationError: If `partition` never holds `source`
        ApplicationNotFoundError: If no candidate partition holds a match
        AmbiguousApplicationError: If more than one partition holds a match
    """
    matches: list[tuple[PartitionRepository, Application]] = []
    for spec in partitions_for(source, partition):
        repository = repositories[spec.partition]
        record = await repository.read(db, application_id)
        if record is None:
            continue

        application = normalize(record, repository.spec)
        if application.source == source:
            matches.append((repository, application))

    if not matches:
        raise ApplicationNotFoundError(source, application_id)
    if len(matches) > 1:
        found = [repository.spec.partition for repository, _ in matches]
        logger.warning(
            f"Application {source.value}/{application_id} found in "
            f"{[p.value for p in found]}; partition required"
        )
        raise AmbiguousApplicationError(source, application_id, found)
    return matches[0]
