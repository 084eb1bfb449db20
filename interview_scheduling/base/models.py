from datetime import date as Date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


# === 🗓 Availability ===

class CreateSlotRequest(BaseModel):
    date: Date
    hour_start: int = Field(..., ge=0, le=23)
    hour_end: int = Field(..., ge=1, le=24)
    kind: Literal["available", "blocked"] = "available"

    @model_validator(mode="after")
    def check_hour_order(self):
        if self.hour_end <= self.hour_start:
            raise ValueError("hour_end must be after hour_start")
        return self


class BulkSlotRequest(BaseModel):
    slots: List[CreateSlotRequest] = Field(..., min_length=1)


class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tutor_id: str
    date: Date
    hour_start: int
    hour_end: int
    kind: str
    interview_id: Optional[str] = None


class TutorAvailability(BaseModel):
    tutor_id: str
    availability: List[SlotResponse]


class StudentSlot(BaseModel):
    date: Date
    hour_start: int = Field(..., ge=0, le=23)
    hour_end: int = Field(..., ge=1, le=24)

    @model_validator(mode="after")
    def check_hour_order(self):
        if self.hour_end <= self.hour_start:
            raise ValueError("hour_end must be after hour_start")
        return self


class StudentAvailabilityRequest(BaseModel):
    slots: List[StudentSlot] = Field(..., min_length=1)
    notes: Optional[str] = None


class StudentSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    date: Date
    hour_start: int
    hour_end: int
    notes: Optional[str] = None


# === 🎥 Meeting Resource ===

class MeetingHandle(BaseModel):
    meeting_id: str
    join_url: str
    start_url: Optional[str] = None  # host-only
    host: str
    password: Optional[str] = None
    start_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    topic: Optional[str] = None


class AttachMeetingRequest(BaseModel):
    meeting_id: str
    join_url: str
    host: str


# === 👥 Participants & Notifications ===

class Contact(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class NotificationContext(BaseModel):
    interview_id: str
    role: Literal["tutor", "student"]
    counterpart_name: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    join_url: Optional[str] = None
    reason: Optional[str] = None


class NotificationResult(BaseModel):
    kind: Literal["assigned", "confirmed", "cancelled"]
    recipient: Optional[str] = None
    status: Literal["sent", "skipped", "failed"]
    error: Optional[str] = None


# === 🧑‍🏫 Interview Requests ===

class CreateInterviewRequest(BaseModel):
    student_id: str
    booking_id: Optional[str] = None
    notes: Optional[str] = None
    tutor_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    availability_slot_id: Optional[str] = None

    @model_validator(mode="after")
    def check_assignment_pair(self):
        if (self.tutor_id is None) != (self.scheduled_at is None):
            raise ValueError("tutor_id and scheduled_at must be provided together")
        if self.availability_slot_id and not self.tutor_id:
            raise ValueError("availability_slot_id requires tutor_id and scheduled_at")
        return self


class AssignRequest(BaseModel):
    tutor_id: str
    scheduled_at: datetime
    availability_slot_id: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=240)
    student: Optional[Contact] = None
    tutor: Optional[Contact] = None


class ConfirmRequest(BaseModel):
    tutor_id: str
    tutor_name: str
    tutor_email: EmailStr
    scheduled_at: datetime
    student_id: str
    student_name: str
    student_email: EmailStr


class CancelRequest(BaseModel):
    reason: Optional[str] = None
    student: Optional[Contact] = None
    tutor: Optional[Contact] = None


class CompleteRequest(BaseModel):
    student_feedback: Optional[str] = None
    notes: Optional[str] = None


class UpdateNotesRequest(BaseModel):
    notes: Optional[str] = None


# === 🔖 Interview State (tagged) ===

class MeetingRef(BaseModel):
    meeting_id: str
    join_url: Optional[str] = None
    host: Optional[str] = None


class UnassignedState(BaseModel):
    state: Literal["unassigned"] = "unassigned"


class AssignedState(BaseModel):
    state: Literal["assigned"] = "assigned"
    tutor_id: str
    scheduled_at: datetime
    meeting: Optional[MeetingRef] = None


class ConfirmedState(BaseModel):
    state: Literal["confirmed"] = "confirmed"
    tutor_id: str
    scheduled_at: datetime
    meeting: MeetingRef
    confirmed_at: datetime


class CompletedState(BaseModel):
    state: Literal["completed"] = "completed"
    tutor_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    student_feedback: Optional[str] = None


InterviewState = Annotated[
    Union[UnassignedState, AssignedState, ConfirmedState, CompletedState],
    Field(discriminator="state"),
]


# === 📤 Responses ===

class InterviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    tutor_id: Optional[str] = None
    booking_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    completed: bool = False
    notes: Optional[str] = None
    student_feedback: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_join_url: Optional[str] = None
    meeting_host: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    status: Optional[InterviewState] = None


class SchedulingResult(BaseModel):
    interview: Optional[InterviewResponse] = None
    interview_id: str
    deleted: bool = False
    warnings: List[str] = Field(default_factory=list)
    notifications: List[NotificationResult] = Field(default_factory=list)


class UpcomingSession(BaseModel):
    id: str
    student_id: str
    booking_id: Optional[str] = None
    scheduled_at: datetime
    meeting_join_url: Optional[str] = None
    notes: Optional[str] = None


class SessionStats(BaseModel):
    total_completed: int
    total_upcoming: int
    this_week_completed: int
    this_month_completed: int


class BulkSlotResult(BaseModel):
    created: int
    slots: List[SlotResponse]
