import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String, Text, func

from interview_scheduling.models.database import Base


class StudentAvailabilityModel(Base):
    """Hours a student says they are free for a mock interview."""

    __tablename__ = "student_availability"
    __table_args__ = (
        CheckConstraint("hour_start >= 0 AND hour_start <= 23", name="ck_student_hour_start"),
        CheckConstraint("hour_end >= 1 AND hour_end <= 24", name="ck_student_hour_end"),
        CheckConstraint("hour_end > hour_start", name="ck_student_hour_order"),
        Index("ix_student_availability_student_date", "student_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    hour_start = Column(Integer, nullable=False)
    hour_end = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return (f"<StudentAvailability {self.id} student={self.student_id} {self.date} "
                f"{self.hour_start:02d}-{self.hour_end:02d}>")
