"""
Tests for the notification dispatcher.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from careers.modules.applications.exceptions import ApplicationServiceError, TransportFailure
from careers.modules.applications.models import ApplicationSource, LifecycleStatus
from careers.modules.applications.normalizer import RawRecord, normalize
from careers.modules.applications.notifications import (
    LifecycleTransitioned,
    NotificationDispatcher,
    NullNotifier,
    render_notification,
)
from careers.modules.applications.partitions import PARTITIONS, Partition


def _event(status=LifecycleStatus.ACCEPTED, email="amina.benali@example.com", **overrides):
    fields = {
        "source": ApplicationSource.JOB_OPENING,
        "application_id": 1,
        "email": email,
        "applicant_name": "Amina Benali",
        "role_label": "Backend Developer",
        "status": status,
    }
    fields.update(overrides)
    return LifecycleTransitioned(**fields)


class TestRenderNotification:
    """Tests for template selection."""

    def test_acceptance_template(self):
        subject, html = render_notification(_event(LifecycleStatus.ACCEPTED), "Acme")
        assert subject == "Your application has been accepted"
        assert "Amina Benali" in html
        assert "Backend Developer" in html
        assert "Acme" in html

    def test_rejection_template(self):
        subject, html = render_notification(_event(LifecycleStatus.REJECTED), "Acme")
        assert subject == "An update on your application"
        assert "not been selected" in html

    def test_pending_has_no_template(self):
        with pytest.raises(ValueError):
            render_notification(_event(LifecycleStatus.PENDING))

    def test_values_are_escaped(self):
        _, html = render_notification(
            _event(applicant_name="<script>x</script>", role_label="R&D"), "Acme"
        )
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "R&amp;D" in html


@pytest.mark.asyncio
async def test_dispatch_delivers_one_message(transport):
    dispatcher = NotificationDispatcher(transport, company_name="Acme")

    delivered = await dispatcher.dispatch(_event())

    assert delivered is True
    assert len(transport.sent) == 1
    to_address, subject, _ = transport.sent[0]
    assert to_address == "amina.benali@example.com"
    assert subject == "Your application has been accepted"


@pytest.mark.asyncio
async def test_dispatch_transport_failure_is_swallowed(caplog):
    transport = AsyncMock()
    transport.deliver = AsyncMock(return_value=False)
    dispatcher = NotificationDispatcher(transport)

    with caplog.at_level(logging.ERROR):
        delivered = await dispatcher.dispatch(_event())

    assert delivered is False
    transport.deliver.assert_awaited_once()
    assert "failed" in caplog.text


@pytest.mark.asyncio
async def test_dispatch_transport_exception_is_swallowed():
    transport = AsyncMock()
    transport.deliver = AsyncMock(side_effect=ConnectionError("smtp down"))
    dispatcher = NotificationDispatcher(transport)

    assert await dispatcher.dispatch(_event()) is False
    # Never retried
    assert transport.deliver.await_count == 1


@pytest.mark.asyncio
async def test_dispatch_without_email_is_skipped(transport):
    dispatcher = NotificationDispatcher(transport)

    assert await dispatcher.dispatch(_event(email=None)) is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_notify_is_detached_from_delivery():
    """notify returns before the transport finishes."""
    release = asyncio.Event()
    sent = []

    class SlowTransport:
        async def deliver(self, to_address, subject, html_body):
            await release.wait()
            sent.append(to_address)
            return True

    dispatcher = NotificationDispatcher(SlowTransport())
    await dispatcher.start()
    try:
        dispatcher.notify(_event())
        await asyncio.sleep(0)
        assert sent == []

        release.set()
        await asyncio.wait_for(dispatcher.wait_idle(), timeout=1)
        assert sent == ["amina.benali@example.com"]
    finally:
        await dispatcher.stop()


@pytest.mark.asyncio
async def test_worker_survives_failed_delivery():
    transport = AsyncMock()
    transport.deliver = AsyncMock(side_effect=[RuntimeError("boom"), True])
    dispatcher = NotificationDispatcher(transport)
    await dispatcher.start()

    dispatcher.notify(_event(application_id=1))
    dispatcher.notify(_event(application_id=2))
    await asyncio.wait_for(dispatcher.wait_idle(), timeout=1)

    assert transport.deliver.await_count == 2
    assert dispatcher.running is True
    await dispatcher.stop()


class HangingTransport:
    """MailTransport that never answers for one address."""

    def __init__(self, hang_for: str):
        self.hang_for = hang_for
        self.sent: list[str] = []
        self._never = asyncio.Event()

    async def deliver(self, to_address: str, subject: str, html_body: str) -> bool:
        if to_address == self.hang_for:
            await self._never.wait()
        self.sent.append(to_address)
        return True


@pytest.mark.asyncio
async def test_hung_delivery_times_out(caplog):
    dispatcher = NotificationDispatcher(
        HangingTransport("amina.benali@example.com"), delivery_timeout=0.05
    )

    with caplog.at_level(logging.ERROR):
        delivered = await asyncio.wait_for(dispatcher.dispatch(_event()), timeout=1)

    assert delivered is False
    assert "no answer within 0.05s" in caplog.text


@pytest.mark.asyncio
async def test_hung_delivery_does_not_block_later_events():
    transport = HangingTransport("amina.benali@example.com")
    dispatcher = NotificationDispatcher(transport, delivery_timeout=0.05)
    await dispatcher.start()

    dispatcher.notify(_event(application_id=1))
    dispatcher.notify(_event(application_id=2, email="omar@example.com"))
    await asyncio.wait_for(dispatcher.wait_idle(), timeout=1)

    assert transport.sent == ["omar@example.com"]
    assert dispatcher.running is True
    await dispatcher.stop()


@pytest.mark.asyncio
async def test_stop_drain_is_bounded(caplog):
    dispatcher = NotificationDispatcher(
        HangingTransport("amina.benali@example.com"),
        delivery_timeout=60,
        drain_timeout=0.05,
    )
    await dispatcher.start()
    dispatcher.notify(_event(application_id=1))
    dispatcher.notify(_event(application_id=2))

    with caplog.at_level(logging.WARNING):
        await asyncio.wait_for(dispatcher.stop(drain=True), timeout=2)

    assert dispatcher.running is False
    assert "drain timed out" in caplog.text


@pytest.mark.asyncio
async def test_stop_drains_queued_events(transport):
    dispatcher = NotificationDispatcher(transport)
    await dispatcher.start()

    for application_id in range(1, 4):
        dispatcher.notify(_event(application_id=application_id))
    await dispatcher.stop(drain=True)

    assert len(transport.sent) == 3
    assert dispatcher.running is False
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_stop_without_drain_discards_pending(transport):
    dispatcher = NotificationDispatcher(transport)
    # Not started: events stay queued
    dispatcher.notify(_event())
    assert dispatcher.pending == 1

    await dispatcher.start()
    await dispatcher.stop(drain=False)

    assert dispatcher.running is False


@pytest.mark.asyncio
async def test_queue_overflow_drops_event(transport, caplog):
    dispatcher = NotificationDispatcher(transport, max_queue_size=1)

    with caplog.at_level(logging.WARNING):
        dispatcher.notify(_event(application_id=1))
        dispatcher.notify(_event(application_id=2))

    assert dispatcher.pending == 1
    assert "queue full" in caplog.text


@pytest.mark.asyncio
async def test_start_twice_is_noop(transport):
    dispatcher = NotificationDispatcher(transport)
    await dispatcher.start()
    worker = dispatcher._worker

    await dispatcher.start()

    assert dispatcher._worker is worker
    await dispatcher.stop()


@pytest.mark.asyncio
async def test_stop_before_start_is_noop(transport):
    dispatcher = NotificationDispatcher(transport)
    await dispatcher.stop()
    assert dispatcher.running is False


def test_null_notifier_logs_and_drops(caplog):
    with caplog.at_level(logging.WARNING):
        NullNotifier().notify(_event())
    assert "dropping accepted notification" in caplog.text


def test_event_from_application(row_factory):
    application = normalize(
        RawRecord(row=row_factory(4, position="QA Engineer")), PARTITIONS[Partition.SPONTANEOUS]
    )

    event = LifecycleTransitioned.from_application(application)

    assert event.source == ApplicationSource.SPONTANEOUS
    assert event.application_id == 4
    assert event.email == application.email
    assert event.role_label == "QA Engineer"
    assert event.status == LifecycleStatus.PENDING
    assert event.occurred_at is not None


def test_transport_failure_is_not_a_service_error():
    failure = TransportFailure("amina.benali@example.com", "no answer within 10s")

    assert failure.error_code == "TRANSPORT_FAILURE"
    assert "no answer within 10s" in failure.message
    assert not isinstance(failure, ApplicationServiceError)
