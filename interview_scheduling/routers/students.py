from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from interview_scheduling.base.dependencies import get_availability_store
from interview_scheduling.base.models import StudentAvailabilityRequest, StudentSlotResponse
from interview_scheduling.services.availability_store import AvailabilityStore

router = APIRouter()


@router.get("/{student_id}/availability", response_model=List[StudentSlotResponse])
def get_student_availability(
    student_id: str,
    from_date: Optional[date] = None,
    store: AvailabilityStore = Depends(get_availability_store),
):
    return [StudentSlotResponse.model_validate(s) for s in store.list_for_student(student_id, from_date)]


@router.put("/{student_id}/availability", response_model=List[StudentSlotResponse])
def submit_student_availability(
    student_id: str,
    req: StudentAvailabilityRequest,
    store: AvailabilityStore = Depends(get_availability_store),
):
    records = store.replace_for_student(student_id, req.slots, req.notes)
    return [StudentSlotResponse.model_validate(r) for r in records]
