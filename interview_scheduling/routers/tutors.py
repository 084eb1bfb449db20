from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from interview_scheduling.base.dependencies import get_availability_store, get_interview_store
from interview_scheduling.base.models import (
    BulkSlotRequest,
    BulkSlotResult,
    CreateSlotRequest,
    SessionStats,
    SlotResponse,
    TutorAvailability,
    UpcomingSession,
)
from interview_scheduling.services.availability_store import AvailabilityStore
from interview_scheduling.services.interview_store import InterviewStore

router = APIRouter()


@router.get("/availability", response_model=List[TutorAvailability])
def list_all_availability(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: AvailabilityStore = Depends(get_availability_store),
):
    grouped = store.list_grouped_by_tutor(start_date, end_date)
    return [
        TutorAvailability(tutor_id=tutor_id, availability=[SlotResponse.model_validate(s) for s in slots])
        for tutor_id, slots in grouped.items()
    ]


@router.post("/{tutor_id}/availability", response_model=SlotResponse, status_code=201)
def add_availability(
    tutor_id: str,
    req: CreateSlotRequest,
    store: AvailabilityStore = Depends(get_availability_store),
):
    return SlotResponse.model_validate(store.create_slot(tutor_id, req))


@router.post("/{tutor_id}/availability/bulk", response_model=BulkSlotResult, status_code=201)
def add_bulk_availability(
    tutor_id: str,
    req: BulkSlotRequest,
    store: AvailabilityStore = Depends(get_availability_store),
):
    slots = store.create_slots_bulk(tutor_id, req.slots)
    return BulkSlotResult(created=len(slots), slots=[SlotResponse.model_validate(s) for s in slots])


@router.get("/{tutor_id}/availability", response_model=List[SlotResponse])
def get_tutor_availability(
    tutor_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: AvailabilityStore = Depends(get_availability_store),
):
    return [SlotResponse.model_validate(s) for s in store.list_for_tutor(tutor_id, start_date, end_date)]


@router.delete("/{tutor_id}/availability/{slot_id}", status_code=204)
def delete_availability(
    tutor_id: str,
    slot_id: str,
    store: AvailabilityStore = Depends(get_availability_store),
):
    store.delete_slot(slot_id, tutor_id)


@router.get("/{tutor_id}/sessions/upcoming", response_model=List[UpcomingSession])
def get_upcoming_sessions(tutor_id: str, store: InterviewStore = Depends(get_interview_store)):
    return [
        UpcomingSession(
            id=i.id,
            student_id=i.student_id,
            booking_id=i.booking_id,
            scheduled_at=i.scheduled_at,
            meeting_join_url=i.meeting_join_url,
            notes=i.notes,
        )
        for i in store.upcoming_for_tutor(tutor_id)
    ]


@router.get("/{tutor_id}/sessions/stats", response_model=SessionStats)
def get_session_stats(tutor_id: str, store: InterviewStore = Depends(get_interview_store)):
    return store.session_stats(tutor_id)
