"""
Fixtures for applications tests.

Partition storage is replaced by in-memory fakes with the same interface as
PartitionRepository; they yield to the event loop on every call so
concurrent callers interleave the way they would against a database.
"""

import asyncio
import contextlib
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from careers.modules.applications.models import LifecycleStatus
from careers.modules.applications.normalizer import RawRecord
from careers.modules.applications.partitions import PARTITIONS, Partition, PartitionSpec

BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def make_row(application_id: int = 1, **overrides: Any) -> dict[str, Any]:
    """Raw partition row with every shared column filled in."""
    row = {
        "id": application_id,
        "first_name": "Amina",
        "last_name": "Benali",
        "email": "amina.benali@example.com",
        "phone": "+212600000001",
        "cv_path": "uploads/cv_amina.pdf",
        "cover_letter_path": None,
        "institution_type": "Public",
        "degree": "Master",
        "experience": 3,
        "skills": {"Python": 5, "SQL": 4},
        "status": LifecycleStatus.PENDING,
        "submitted_at": BASE_TIME + timedelta(hours=application_id),
        "status_updated_at": None,
    }
    row.update(overrides)
    return row


class FakePartitionRepository:
    """In-memory stand-in for PartitionRepository."""

    def __init__(
        self,
        spec: PartitionSpec,
        rows: list[dict[str, Any]] | None = None,
        openings: dict[int, dict[str, Any]] | None = None,
    ):
        self.spec = spec
        self.rows: dict[int, dict[str, Any]] = {row["id"]: dict(row) for row in rows or []}
        self.openings = openings or {}
        self.list_error: BaseException | None = None
        self.list_delay: float = 0
        self.update_calls: list[tuple[int, LifecycleStatus, LifecycleStatus]] = []

    def _record(self, row: dict[str, Any]) -> RawRecord:
        opening = self.openings.get(row.get("opening_id")) if self.spec.joins_opening else None
        return RawRecord(row=dict(row), opening=opening)

    async def read(self, db: Any, application_id: int) -> RawRecord | None:
        await asyncio.sleep(0)
        row = self.rows.get(application_id)
        return self._record(row) if row is not None else None

    async def list(self, db: Any) -> list[RawRecord]:
        await asyncio.sleep(self.list_delay)
        if self.list_error is not None:
            raise self.list_error
        return [self._record(row) for row in self.rows.values()]

    async def update_status(
        self,
        db: Any,
        application_id: int,
        expected: LifecycleStatus,
        new: LifecycleStatus,
    ) -> bool:
        await asyncio.sleep(0)
        self.update_calls.append((application_id, expected, new))
        # Compare and set with no await in between
        row = self.rows.get(application_id)
        if row is None or row["status"] != expected:
            return False
        row["status"] = new
        row["status_updated_at"] = datetime.now(UTC)
        return True


class RecordingNotifier:
    """TransitionNotifier that keeps every event it is handed."""

    def __init__(self, error: Exception | None = None):
        self.events = []
        self.error = error

    def notify(self, event) -> None:
        if self.error is not None:
            raise self.error
        self.events.append(event)


class RecordingTransport:
    """MailTransport that records deliveries instead of sending them."""

    def __init__(self, result: bool = True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.sent: list[tuple[str, str, str]] = []

    async def deliver(self, to_address: str, subject: str, html_body: str) -> bool:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        self.sent.append((to_address, subject, html_body))
        return self.result


@contextlib.asynccontextmanager
async def fake_session_factory():
    """Stands in for async_sessionmaker: each call yields a fresh mock session."""
    yield AsyncMock()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    return AsyncMock()


@pytest.fixture
def openings():
    """Openings keyed by id, one per contract type."""
    return {
        10: {"id": 10, "title": "Backend Developer", "category": "CDI", "expires_at": None},
        11: {"id": 11, "title": "Data Intern", "category": "Stage 6 mois", "expires_at": None},
        12: {"id": 12, "title": "Fraud Detection PFE", "category": "PFE", "expires_at": None},
    }


@pytest.fixture
def fake_repositories(openings):
    """
    One fake repository per partition.

    job partition: id 1 (CDI opening), id 2 (internship opening),
    id 3 (PFE opening); internship partition: id 1; spontaneous: id 1.
    """
    return {
        Partition.JOB: FakePartitionRepository(
            PARTITIONS[Partition.JOB],
            rows=[
                make_row(1, opening_id=10, position="Developer", skills={"Python": 5, "SQL": 5}),
                make_row(
                    2,
                    first_name="Youssef",
                    last_name="Alaoui",
                    email="youssef@example.com",
                    opening_id=11,
                    degree="Licence",
                    skills={"Excel": 3},
                ),
                make_row(
                    3,
                    first_name="Sara",
                    last_name="Idrissi",
                    email="sara@example.com",
                    opening_id=12,
                    degree="Ingénieur",
                    skills={"ML": 4, "Python": 4},
                ),
            ],
            openings=openings,
        ),
        Partition.INTERNSHIP: FakePartitionRepository(
            PARTITIONS[Partition.INTERNSHIP],
            rows=[
                make_row(
                    1,
                    first_name="Omar",
                    last_name="Tazi",
                    email="omar@example.com",
                    domain="Web development",
                    duration="3 months",
                    university="ENSIAS",
                    degree="Technicien",
                    experience=0,
                    skills='{"React": 2, "CSS": 3}',
                ),
            ],
        ),
        Partition.SPONTANEOUS: FakePartitionRepository(
            PARTITIONS[Partition.SPONTANEOUS],
            rows=[
                make_row(
                    1,
                    first_name="Lina",
                    last_name="Chraibi",
                    email="lina@example.com",
                    position="Data Analyst",
                    degree="Doctorat",
                    experience=7,
                    skills=None,
                    status=LifecycleStatus.ACCEPTED,
                ),
            ],
        ),
    }


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def row_factory():
    """Build raw partition rows: row_factory(id, **column_overrides)."""
    return make_row


@pytest.fixture
def repository_factory():
    """Build a fake repository: repository_factory(partition, rows, openings)."""

    def _build(partition: Partition, rows=None, openings=None) -> FakePartitionRepository:
        return FakePartitionRepository(PARTITIONS[partition], rows=rows, openings=openings)

    return _build


@pytest.fixture
def session_factory():
    return fake_session_factory
