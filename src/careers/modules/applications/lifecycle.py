"""
Application Lifecycle

Status state machine for applications: PENDING -> ACCEPTED | REJECTED.
Both outcomes are terminal; deciding an application twice is an error, so a
second decision can never trigger a second notification.

The status write is a conditional update guarded on the row still being
PENDING, so of two concurrent decisions exactly one is applied. The
transition event is handed to the notifier only after that write commits;
a notifier failure never undoes the committed status.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from careers.modules.applications.exceptions import (
    ApplicationValidationError,
    InvalidStateTransitionError,
)
from careers.modules.applications.models import LifecycleStatus
from careers.modules.applications.notifications import (
    LifecycleTransitioned,
    TransitionNotifier,
)
from careers.modules.applications.partitions import Partition, parse_partition, parse_source
from careers.modules.applications.repository import (
    PartitionRepository,
    build_repositories,
    locate_application,
)
from careers.modules.applications.schemas import Application

logger = logging.getLogger(__name__)

VALID_STATUS_TRANSITIONS: dict[LifecycleStatus, frozenset[LifecycleStatus]] = {
    LifecycleStatus.PENDING: frozenset({LifecycleStatus.ACCEPTED, LifecycleStatus.REJECTED}),
    # Terminal states - no transitions allowed
    LifecycleStatus.ACCEPTED: frozenset(),
    LifecycleStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in VALID_STATUS_TRANSITIONS.items() if not targets
)


def parse_target_status(value: Any) -> LifecycleStatus:
    """
    Parse a requested target status.

    Raises:
        ApplicationValidationError: If the value is not a terminal status
    """
    try:
        status = LifecycleStatus(getattr(value, "value", value).strip().lower())
    except (AttributeError, ValueError):
        status = None

    if status not in TERMINAL_STATUSES:
        valid = sorted(s.value for s in TERMINAL_STATUSES)
        raise ApplicationValidationError(f"Invalid target status: {value!r}. Expected one of {valid}")
    return status


def parse_application_id(value: Any) -> int:
    """
    Parse a partition-local application id.

    Raises:
        ApplicationValidationError: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise ApplicationValidationError(f"Invalid application id: {value!r}")
    try:
        application_id = int(value)
    except (TypeError, ValueError) as e:
        raise ApplicationValidationError(f"Invalid application id: {value!r}") from e
    if application_id < 1:
        raise ApplicationValidationError(f"Invalid application id: {value!r}")
    return application_id


class LifecycleController:
    """Applies status decisions and emits transition events after commit."""

    def __init__(
        self,
        notifier: TransitionNotifier,
        repositories: Mapping[Partition, PartitionRepository] | None = None,
    ):
        self._notifier = notifier
        self._repositories = repositories if repositories is not None else build_repositories()

    async def transition(
        self,
        db: AsyncSession,
        source: Any,
        application_id: Any,
        target: Any,
        partition: Any = None,
    ) -> Application:
        """
        Decide a pending application.

        Args:
            db: Database session
            source: Application source tag
            application_id: Partition-local id
            target: ACCEPTED or REJECTED
            partition: Partition holding the row, as listed in
                Application.partition; needed when (source, id) matches
                rows in more than one partition

        Returns:
            The application with its new status

        Raises:
            ApplicationValidationError: If source, id, target or partition is
                malformed
            ApplicationNotFoundError: If no application matches (source, id)
            AmbiguousApplicationError: If no partition was given and several
                partitions hold (source, id)
            InvalidStateTransitionError: If the application is not PENDING,
                including when a concurrent decision won the race
        """
        source = parse_source(source)
        application_id = parse_application_id(application_id)
        target_status = parse_target_status(target)
        partition = parse_partition(partition)

        repository, application = await locate_application(
            db, source, application_id, self._repositories, partition
        )

        if target_status not in VALID_STATUS_TRANSITIONS[application.status]:
            logger.warning(
                f"Rejected transition {source.value}/{application_id}: "
                f"{application.status.value} -> {target_status.value}"
            )
            raise InvalidStateTransitionError(application.status, target_status)

        applied = await repository.update_status(
            db, application_id, LifecycleStatus.PENDING, target_status
        )
        if not applied:
            current = await self._current_status(db, repository, application_id)
            logger.warning(
                f"Lost race deciding {source.value}/{application_id}: "
                f"status is now {getattr(current, 'value', current)}"
            )
            raise InvalidStateTransitionError(current, target_status)

        logger.info(
            f"Application {source.value}/{application_id} "
            f"({repository.spec.partition.value}) -> {target_status.value}"
        )
        updated = application.model_copy(
            update={"status": target_status, "status_updated_at": datetime.now(UTC)}
        )

        # The status is committed from here on; notification problems are only logged
        try:
            self._notifier.notify(LifecycleTransitioned.from_application(updated))
        except Exception as e:
            logger.error(
                f"Failed to hand off notification for {source.value}/{application_id}: {e}",
                exc_info=True,
            )

        return updated

    @staticmethod
    async def _current_status(
        db: AsyncSession,
        repository: PartitionRepository,
        application_id: int,
    ) -> LifecycleStatus | str:
        record = await repository.read(db, application_id)
        if record is None:
            return "deleted"
        status = record.row.get("status")
        return status if status is not None else LifecycleStatus.PENDING
