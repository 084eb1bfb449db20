import uuid
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String, func

from interview_scheduling.models.database import Base


class SlotKind(str, Enum):
    AVAILABLE = "available"
    INTERVIEW = "interview"
    BLOCKED = "blocked"


class AvailabilitySlotModel(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (
        CheckConstraint("hour_start >= 0 AND hour_start <= 23", name="ck_slot_hour_start"),
        CheckConstraint("hour_end >= 1 AND hour_end <= 24", name="ck_slot_hour_end"),
        CheckConstraint("hour_end > hour_start", name="ck_slot_hour_order"),
        CheckConstraint("kind IN ('available', 'interview', 'blocked')", name="ck_slot_kind"),
        # an interview slot always points at its interview, nothing else does
        CheckConstraint(
            "(kind = 'interview' AND interview_id IS NOT NULL) OR "
            "(kind != 'interview' AND interview_id IS NULL)",
            name="ck_slot_interview_link",
        ),
        Index("ix_slot_tutor_date", "tutor_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tutor_id = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    hour_start = Column(Integer, nullable=False)
    hour_end = Column(Integer, nullable=False)
    kind = Column(String(16), nullable=False, default=SlotKind.AVAILABLE.value)
    interview_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return (f"<AvailabilitySlot {self.id} tutor={self.tutor_id} {self.date} "
                f"{self.hour_start:02d}-{self.hour_end:02d} {self.kind}>")
