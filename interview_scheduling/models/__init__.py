from .database import Base, get_db, get_engine, get_session_factory, init_db
from .availability_slot import AvailabilitySlotModel, SlotKind
from .interview import InterviewModel
from .student_availability import StudentAvailabilityModel

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_factory",
    "init_db",
    "AvailabilitySlotModel",
    "SlotKind",
    "InterviewModel",
    "StudentAvailabilityModel",
]
