"""
Scheduling Services Module

Stores for the two persisted tables, the meeting host allocator, the meeting
resource pool adapter, outbound notifications, and the orchestrator that
ties them together.
"""

# === Persistence ===
from .availability_store import AvailabilityStore
from .interview_store import AssignmentSnapshot, InterviewStore

# === Meeting Resources ===
from .host_allocator import HostAllocator
from .meeting_pool import MeetingResourcePool, ZoomMeetingPool

# === Notifications ===
from .notification_service import EmailNotificationDispatcher, NotificationDispatcher

# === State Machine ===
from .interview_state import derive_state, to_response
from .scheduling_orchestrator import SchedulingOrchestrator

# === Exported Interface ===
__all__ = [
    "AvailabilityStore",
    "AssignmentSnapshot",
    "InterviewStore",
    "HostAllocator",
    "MeetingResourcePool",
    "ZoomMeetingPool",
    "EmailNotificationDispatcher",
    "NotificationDispatcher",
    "derive_state",
    "to_response",
    "SchedulingOrchestrator",
]
