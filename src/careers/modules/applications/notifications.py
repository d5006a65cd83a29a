"""
Outcome Notifications

Transition events and the dispatcher that turns them into applicant emails.

The lifecycle controller only sees the one-method TransitionNotifier
interface. NotificationDispatcher implements it with an in-process queue
drained by a single worker task, so mail delivery never runs inside the
request that changed the status and never holds its database session.

Delivery is best effort: a failed or timed-out send is logged and dropped,
and shutdown waits for the queue only up to a drain timeout. There are no
retries and nothing is reported back to the caller that triggered the
transition.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from careers.core.email import render_acceptance_email, render_rejection_email
from careers.modules.applications.exceptions import TransportFailure
from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.schemas import Application

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_TIMEOUT_SECONDS = 10.0
DEFAULT_DRAIN_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class LifecycleTransitioned:
    """An application left PENDING for a terminal status."""

    source: ApplicationSource
    application_id: int
    email: str | None
    applicant_name: str
    role_label: str
    status: LifecycleStatus
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_application(cls, application: Application) -> "LifecycleTransitioned":
        return cls(
            source=application.source,
            application_id=application.id,
            email=application.email,
            applicant_name=application.applicant_name,
            role_label=application.role_label,
            status=application.status,
        )


class TransitionNotifier(Protocol):
    """Receives transition events after the status change is committed."""

    def notify(self, event: LifecycleTransitioned) -> None: ...


class MailTransport(Protocol):
    """Outbound mail service."""

    async def deliver(self, to_address: str, subject: str, html_body: str) -> bool: ...


class NullNotifier:
    """Notifier used when no dispatcher is running; events are logged and dropped."""

    def notify(self, event: LifecycleTransitioned) -> None:
        logger.warning(
            f"No notification dispatcher running; dropping {event.status.value} notification "
            f"for {event.source.value}/{event.application_id}"
        )


Renderer = Callable[[str, str, str | None], tuple[str, str]]

_TEMPLATES: dict[LifecycleStatus, Renderer] = {
    LifecycleStatus.ACCEPTED: render_acceptance_email,
    LifecycleStatus.REJECTED: render_rejection_email,
}


def render_notification(
    event: LifecycleTransitioned,
    company_name: str | None = None,
) -> tuple[str, str]:
    """
    Pick and fill the template for an event.

    Returns:
        (subject, html_body)

    Raises:
        ValueError: If the event's status has no outcome template
    """
    renderer = _TEMPLATES.get(event.status)
    if renderer is None:
        raise ValueError(f"No notification template for status {event.status.value}")
    return renderer(event.applicant_name or "Applicant", event.role_label, company_name)


class NotificationDispatcher:
    """
    Queue-backed TransitionNotifier.

    Usage:
        dispatcher = NotificationDispatcher(ResendMailTransport())
        await dispatcher.start()
        dispatcher.notify(event)      # returns immediately
        await dispatcher.stop()       # drains queued events first
    """

    def __init__(
        self,
        transport: MailTransport,
        *,
        max_queue_size: int = 1000,
        company_name: str | None = None,
        delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT_SECONDS,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT_SECONDS,
    ):
        self._transport = transport
        self._company_name = company_name
        self._delivery_timeout = delivery_timeout
        self._drain_timeout = drain_timeout
        self._queue: asyncio.Queue[LifecycleTransitioned] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        """Number of events waiting to be delivered."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the worker task. Calling start twice is a no-op."""
        if self.running:
            logger.warning("Notification dispatcher already running")
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started")

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the worker task.

        Args:
            drain: Deliver events already queued before stopping, waiting at
                most the drain timeout; whatever is still queued then is
                dropped
        """
        if self._worker is None:
            logger.debug("Notification dispatcher not started, nothing to stop")
            return

        if drain and not self._worker.done():
            try:
                await asyncio.wait_for(self.wait_idle(), self._drain_timeout)
            except TimeoutError:
                logger.warning(
                    f"Notification drain timed out after {self._drain_timeout}s; "
                    f"dropping {self.pending} queued notifications"
                )

        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("Notification dispatcher stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    def notify(self, event: LifecycleTransitioned) -> None:
        """Queue an event for delivery without waiting on the transport."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                f"Notification queue full; dropping {event.status.value} notification "
                f"for {event.source.value}/{event.application_id}"
            )

    async def dispatch(self, event: LifecycleTransitioned) -> bool:
        """
        Deliver one event.

        Returns:
            True if the transport accepted the message. Failures are logged,
            never raised.
        """
        if not event.email:
            logger.warning(
                f"No email address for {event.source.value}/{event.application_id}; "
                "skipping notification"
            )
            return False

        try:
            subject, html_body = render_notification(event, self._company_name)
            try:
                delivered = await asyncio.wait_for(
                    self._transport.deliver(event.email, subject, html_body),
                    self._delivery_timeout,
                )
            except TimeoutError as e:
                raise TransportFailure(
                    event.email, f"no answer within {self._delivery_timeout}s"
                ) from e
            if not delivered:
                raise TransportFailure(event.email)
        except TransportFailure as e:
            logger.error(f"Notification for {event.source.value}/{event.application_id} failed: {e}")
            return False
        except Exception as e:
            logger.error(
                f"Notification for {event.source.value}/{event.application_id} failed: {e}",
                exc_info=True,
            )
            return False

        logger.info(
            f"Sent {event.status.value} notification to {event.email} "
            f"for {event.source.value}/{event.application_id}"
        )
        return True

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.error(f"Notification worker error: {e}", exc_info=True)
            finally:
                self._queue.task_done()
