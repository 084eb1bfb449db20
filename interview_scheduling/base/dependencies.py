from functools import lru_cache

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from interview_scheduling.base.config import settings
from interview_scheduling.base.logging_config import notification_logger as logger
from interview_scheduling.models.database import get_db
from interview_scheduling.services.availability_store import AvailabilityStore
from interview_scheduling.services.host_allocator import HostAllocator
from interview_scheduling.services.interview_store import InterviewStore
from interview_scheduling.services.meeting_pool import MeetingResourcePool, ZoomMeetingPool
from interview_scheduling.services.notification_service import (
    EmailNotificationDispatcher,
    NotificationDispatcher,
)
from interview_scheduling.services.scheduling_orchestrator import SchedulingOrchestrator

# --- API key header config ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(key: str = Security(api_key_header)):
    if settings.ENABLE_API_KEY_SECURITY and key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or missing API key")


@lru_cache()
def get_meeting_pool() -> MeetingResourcePool:
    return ZoomMeetingPool(
        account_id=settings.ZOOM_ACCOUNT_ID,
        client_id=settings.ZOOM_CLIENT_ID,
        client_secret=settings.ZOOM_CLIENT_SECRET,
        hosts=settings.MEETING_HOSTS,
        timezone=settings.MEETING_TIMEZONE,
        timeout=settings.MEETING_PROVIDER_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_notifier() -> NotificationDispatcher:
    if not settings.SMTP_ENABLED:
        logger.warning("[Email] SMTP credentials missing, notifications will be skipped")
    return EmailNotificationDispatcher(
        smtp_server=settings.SMTP_SERVER,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        sender=settings.DEFAULT_SENDER,
    )


def get_availability_store(db: Session = Depends(get_db)) -> AvailabilityStore:
    return AvailabilityStore(db)


def get_interview_store(db: Session = Depends(get_db)) -> InterviewStore:
    return InterviewStore(db)


def get_orchestrator(
    interviews: InterviewStore = Depends(get_interview_store),
    availability: AvailabilityStore = Depends(get_availability_store),
    meetings: MeetingResourcePool = Depends(get_meeting_pool),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> SchedulingOrchestrator:
    allocator = HostAllocator(
        hosts=meetings.hosts,
        interviews=interviews,
        conflict_window_minutes=settings.CONFLICT_WINDOW_MINUTES,
    )
    return SchedulingOrchestrator(
        interviews=interviews,
        availability=availability,
        allocator=allocator,
        meetings=meetings,
        notifier=notifier,
        default_duration_minutes=settings.DEFAULT_SESSION_MINUTES,
        compensation_attempts=settings.COMPENSATION_ATTEMPTS,
    )
