from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from interview_scheduling.base.dependencies import get_interview_store, get_orchestrator
from interview_scheduling.base.models import (
    AssignRequest,
    AttachMeetingRequest,
    CancelRequest,
    CompleteRequest,
    ConfirmRequest,
    CreateInterviewRequest,
    InterviewResponse,
    MeetingHandle,
    SchedulingResult,
    UpdateNotesRequest,
)
from interview_scheduling.services.interview_state import to_response
from interview_scheduling.services.interview_store import InterviewStore
from interview_scheduling.services.scheduling_orchestrator import SchedulingOrchestrator

router = APIRouter()


@router.post("", response_model=SchedulingResult, status_code=201)
def create_interview(req: CreateInterviewRequest, orchestrator: SchedulingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.create_interview(req)


@router.get("", response_model=List[InterviewResponse])
def list_interviews(
    tutor_id: Optional[str] = None,
    student_id: Optional[str] = None,
    booking_id: Optional[str] = None,
    unassigned: bool = False,
    completed: Optional[bool] = Query(None),
    store: InterviewStore = Depends(get_interview_store),
):
    interviews = store.list(
        tutor_id=tutor_id,
        student_id=student_id,
        booking_id=booking_id,
        unassigned=unassigned,
        completed=completed,
    )
    return [to_response(i) for i in interviews]


@router.get("/unassigned", response_model=List[InterviewResponse])
def list_unassigned(store: InterviewStore = Depends(get_interview_store)):
    return [to_response(i) for i in store.list_unassigned()]


@router.get("/{interview_id}", response_model=InterviewResponse)
def get_interview(interview_id: str, store: InterviewStore = Depends(get_interview_store)):
    return to_response(store.get_or_raise(interview_id))


@router.patch("/{interview_id}", response_model=InterviewResponse)
def update_interview_notes(
    interview_id: str,
    req: UpdateNotesRequest,
    store: InterviewStore = Depends(get_interview_store),
):
    return to_response(store.update_notes(interview_id, req.notes))


@router.post("/{interview_id}/assign", response_model=SchedulingResult)
def assign_interview(
    interview_id: str,
    req: AssignRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.assign(interview_id, req)


@router.post("/{interview_id}/confirm", response_model=SchedulingResult)
def confirm_interview(
    interview_id: str,
    req: ConfirmRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.confirm(interview_id, req)


@router.post("/{interview_id}/cancel", response_model=SchedulingResult)
def cancel_interview(
    interview_id: str,
    req: Optional[CancelRequest] = None,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.cancel(interview_id, req)


@router.post("/{interview_id}/complete", response_model=SchedulingResult)
def complete_interview(
    interview_id: str,
    req: Optional[CompleteRequest] = None,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.complete(interview_id, req)


@router.delete("/{interview_id}", response_model=SchedulingResult)
def delete_interview(interview_id: str, orchestrator: SchedulingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.delete(interview_id)


@router.get("/{interview_id}/meeting", response_model=MeetingHandle)
def get_meeting(interview_id: str, orchestrator: SchedulingOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_meeting(interview_id)


@router.put("/{interview_id}/meeting", response_model=SchedulingResult)
def attach_meeting(
    interview_id: str,
    req: AttachMeetingRequest,
    orchestrator: SchedulingOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.attach_meeting(interview_id, req)
