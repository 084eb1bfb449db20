"""
Scheduling test configuration - pytest fixtures and doubles

Every test gets a fresh in-memory SQLite database with the real tables and
check constraints, a fake meeting pool with two hosts, and a notifier that
records what it was asked to send.

RUNNING TESTS:
# Run all tests
pytest tests/ -v

# Run by marker
pytest -m race -v
pytest -m integration -v
"""

import itertools
import os
import tempfile
from datetime import date, datetime

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "interview-scheduling-logs"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from interview_scheduling.base.exceptions import MeetingProviderError, NotificationError
from interview_scheduling.base.models import CreateSlotRequest, MeetingHandle
from interview_scheduling.models.database import init_db
from interview_scheduling.services.availability_store import AvailabilityStore
from interview_scheduling.services.host_allocator import HostAllocator
from interview_scheduling.services.interview_store import InterviewStore
from interview_scheduling.services.meeting_pool import MeetingResourcePool
from interview_scheduling.services.notification_service import NotificationDispatcher
from interview_scheduling.services.scheduling_orchestrator import SchedulingOrchestrator

HOST_A = "host-a@mockinterviews.example"
HOST_B = "host-b@mockinterviews.example"
TUTOR = "tutor-1"
OTHER_TUTOR = "tutor-2"
STUDENT = "student-1"
INTERVIEW_DAY = date(2025, 3, 1)


# ============================================================================
# DOUBLES
# ============================================================================

class FakeMeetingPool(MeetingResourcePool):
    """In-memory meeting provider with switchable failures."""

    def __init__(self, hosts=(HOST_A, HOST_B), configured=True):
        super().__init__(hosts)
        self.configured = configured
        self.fail_create = False
        self.fail_delete = False
        self.meetings = {}
        self.created = []
        self.delete_attempts = []
        self._ids = itertools.count(9001)

    def is_configured(self):
        return self.configured

    def create_meeting(self, host, topic, start_time, duration_minutes, agenda=None):
        if self.fail_create:
            raise MeetingProviderError("Failed to create Zoom meeting: 503 - unavailable", provider_status=503)
        meeting_id = str(next(self._ids))
        handle = MeetingHandle(
            meeting_id=meeting_id,
            join_url=f"https://zoom.example/j/{meeting_id}",
            start_url=f"https://zoom.example/s/{meeting_id}",
            host=host,
            start_time=start_time,
            duration_minutes=duration_minutes,
            topic=topic,
        )
        self.meetings[meeting_id] = handle
        self.created.append(handle)
        return handle

    def get_meeting(self, meeting_id):
        if meeting_id not in self.meetings:
            raise MeetingProviderError("Failed to get Zoom meeting: 404 - not found", provider_status=404)
        return self.meetings[meeting_id]

    def delete_meeting(self, meeting_id):
        self.delete_attempts.append(meeting_id)
        if self.fail_delete:
            raise MeetingProviderError("Failed to delete Zoom meeting: 500 - boom", provider_status=500)
        self.meetings.pop(meeting_id, None)


class RecordingNotifier(NotificationDispatcher):
    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def deliver(self, kind, recipient, context):
        if recipient.email in self.fail_for:
            raise NotificationError(f"mailbox {recipient.email} unavailable")
        self.sent.append((kind, recipient.email, context))
        return True


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


# ============================================================================
# SERVICES
# ============================================================================

@pytest.fixture
def availability_store(db):
    return AvailabilityStore(db)


@pytest.fixture
def interview_store(db):
    return InterviewStore(db)


@pytest.fixture
def meeting_pool():
    return FakeMeetingPool()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def allocator(interview_store, meeting_pool):
    return HostAllocator(meeting_pool.hosts, interview_store, conflict_window_minutes=45)


@pytest.fixture
def orchestrator(interview_store, availability_store, allocator, meeting_pool, notifier):
    return SchedulingOrchestrator(
        interviews=interview_store,
        availability=availability_store,
        allocator=allocator,
        meetings=meeting_pool,
        notifier=notifier,
        default_duration_minutes=60,
        compensation_attempts=2,
    )


# ============================================================================
# FACTORIES
# ============================================================================

@pytest.fixture
def slot_factory(availability_store):
    def make(tutor_id=TUTOR, day=INTERVIEW_DAY, hour_start=9, hour_end=10, kind="available"):
        return availability_store.create_slot(
            tutor_id,
            CreateSlotRequest(date=day, hour_start=hour_start, hour_end=hour_end, kind=kind),
        )
    return make


@pytest.fixture
def interview_factory(interview_store):
    def make(student_id=STUDENT, booking_id=None, notes=None):
        return interview_store.create(student_id, booking_id=booking_id, notes=notes)
    return make


@pytest.fixture
def host_commitment(interview_store):
    """Persist an interview that already holds `host` at `when`."""
    counter = itertools.count(1)

    def make(host, when, completed=False):
        n = next(counter)
        interview = interview_store.create(f"busy-student-{n}")
        interview_store.assign(
            interview.id,
            f"busy-tutor-{n}",
            when,
            MeetingHandle(meeting_id=f"busy-{n}", join_url=f"https://zoom.example/j/busy-{n}", host=host),
        )
        if completed:
            interview_store.complete(interview.id)
        return interview
    return make


def at(hour, minute=0, day=INTERVIEW_DAY):
    return datetime(day.year, day.month, day.day, hour, minute)
