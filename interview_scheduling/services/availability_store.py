import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, or_

from interview_scheduling.base.exceptions import (
    SchedulingValidationError,
    SlotConflict,
    SlotNotFound,
)
from interview_scheduling.base.models import CreateSlotRequest, StudentSlot
from interview_scheduling.models.availability_slot import AvailabilitySlotModel, SlotKind
from interview_scheduling.models.student_availability import StudentAvailabilityModel
from interview_scheduling.services.store_base import SessionStore
from interview_scheduling.utils.time_utils import utcnow

logger = logging.getLogger("scheduling")


class AvailabilityStore(SessionStore):
    """
    Owns tutor availability slots (creation, listing, deletion, and the
    conditional reserve/release writes used by the orchestrator) and the
    free-time records students submit ahead of being matched with a tutor.
    """

    def get_slot(self, slot_id: str) -> Optional[AvailabilitySlotModel]:
        with self._guard("load availability slot"):
            return self.db.query(AvailabilitySlotModel).filter_by(id=slot_id).first()

    def get_slot_or_raise(self, slot_id: str) -> AvailabilitySlotModel:
        slot = self.get_slot(slot_id)
        if not slot:
            raise SlotNotFound("Availability slot not found")
        return slot

    def create_slot(self, tutor_id: str, req: CreateSlotRequest) -> AvailabilitySlotModel:
        self._validate_kind(req.kind)
        if self._overlapping(tutor_id, req.date, req.hour_start, req.hour_end):
            raise SlotConflict("Overlapping availability already exists")

        slot = AvailabilitySlotModel(
            tutor_id=tutor_id,
            date=req.date,
            hour_start=req.hour_start,
            hour_end=req.hour_end,
            kind=req.kind,
        )
        with self._guard("create availability slot"):
            self.db.add(slot)
            self.db.commit()
            self.db.refresh(slot)

        logger.info(f"[Availability] Slot created: {slot.id} for tutor {tutor_id} "
                    f"on {slot.date} {slot.hour_start}-{slot.hour_end}")
        return slot

    def create_slots_bulk(self, tutor_id: str, requests: Sequence[CreateSlotRequest]) -> List[AvailabilitySlotModel]:
        accepted: List[CreateSlotRequest] = []
        for req in requests:
            self._validate_kind(req.kind)
            clashes_in_batch = any(
                other.date == req.date and other.hour_start < req.hour_end and req.hour_start < other.hour_end
                for other in accepted
            )
            if clashes_in_batch or self._overlapping(tutor_id, req.date, req.hour_start, req.hour_end):
                raise SlotConflict(
                    f"Overlapping availability on {req.date} {req.hour_start}-{req.hour_end}"
                )
            accepted.append(req)

        slots = [
            AvailabilitySlotModel(
                tutor_id=tutor_id,
                date=req.date,
                hour_start=req.hour_start,
                hour_end=req.hour_end,
                kind=req.kind,
            )
            for req in accepted
        ]
        with self._guard("create availability slots"):
            self.db.add_all(slots)
            self.db.commit()
            for slot in slots:
                self.db.refresh(slot)

        logger.info(f"[Availability] Added {len(slots)} slots for tutor {tutor_id}")
        return slots

    def list_for_tutor(
        self,
        tutor_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilitySlotModel]:
        with self._guard("list availability"):
            query = self._date_range(
                self.db.query(AvailabilitySlotModel).filter_by(tutor_id=tutor_id),
                start_date,
                end_date,
            )
            return query.order_by(
                AvailabilitySlotModel.date.asc(), AvailabilitySlotModel.hour_start.asc()
            ).all()

    def list_grouped_by_tutor(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, List[AvailabilitySlotModel]]:
        with self._guard("list availability"):
            slots = self._date_range(self.db.query(AvailabilitySlotModel), start_date, end_date).order_by(
                AvailabilitySlotModel.tutor_id.asc(),
                AvailabilitySlotModel.date.asc(),
                AvailabilitySlotModel.hour_start.asc(),
            ).all()

        grouped: Dict[str, List[AvailabilitySlotModel]] = OrderedDict()
        for slot in slots:
            grouped.setdefault(slot.tutor_id, []).append(slot)
        return grouped

    def slots_for_interview(self, interview_id: str) -> List[AvailabilitySlotModel]:
        with self._guard("load interview slots"):
            return self.db.query(AvailabilitySlotModel).filter_by(interview_id=interview_id).all()

    def delete_slot(self, slot_id: str, tutor_id: str) -> None:
        slot = self.get_slot_or_raise(slot_id)
        if slot.tutor_id != tutor_id:
            raise SchedulingValidationError("Availability slot does not belong to this tutor")
        if slot.kind == SlotKind.INTERVIEW.value:
            raise SlotConflict("Slot holds an interview; cancel the interview before deleting it")

        with self._guard("delete availability slot"):
            self.db.delete(slot)
            self.db.commit()
        logger.info(f"[Availability] Slot deleted: {slot_id}")

    def reserve_slot(self, slot_id: str, tutor_id: str, interview_id: str) -> bool:
        """
        Conditionally flip a slot to `interview`.

        The update only matches while the slot is still free (or already
        linked to this same interview), so the affected row count tells the
        caller whether it won a concurrent reservation.
        """
        with self._guard("reserve availability slot"):
            updated = (
                self.db.query(AvailabilitySlotModel)
                .filter(
                    AvailabilitySlotModel.id == slot_id,
                    AvailabilitySlotModel.tutor_id == tutor_id,
                    or_(
                        and_(
                            AvailabilitySlotModel.kind == SlotKind.AVAILABLE.value,
                            AvailabilitySlotModel.interview_id.is_(None),
                        ),
                        AvailabilitySlotModel.interview_id == interview_id,
                    ),
                )
                .update(
                    {
                        AvailabilitySlotModel.kind: SlotKind.INTERVIEW.value,
                        AvailabilitySlotModel.interview_id: interview_id,
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()

        if updated:
            logger.info(f"[Availability] Slot {slot_id} reserved for interview {interview_id}")
        else:
            logger.warning(f"[Availability] Slot {slot_id} could not be reserved for interview {interview_id}")
        return updated == 1

    def release_for_interview(self, interview_id: str, keep_slot_id: Optional[str] = None) -> int:
        """Return every slot linked to the interview to `available`."""
        with self._guard("release availability slots"):
            query = self.db.query(AvailabilitySlotModel).filter(
                AvailabilitySlotModel.interview_id == interview_id
            )
            if keep_slot_id:
                query = query.filter(AvailabilitySlotModel.id != keep_slot_id)
            released = query.update(
                {
                    AvailabilitySlotModel.kind: SlotKind.AVAILABLE.value,
                    AvailabilitySlotModel.interview_id: None,
                },
                synchronize_session=False,
            )
            self.db.commit()

        if released:
            logger.info(f"[Availability] Released {released} slot(s) held by interview {interview_id}")
        return released

    # === student free time ===

    def list_for_student(self, student_id: str, from_date: Optional[date] = None) -> List[StudentAvailabilityModel]:
        """Free time from `from_date` (default today, UTC) onwards, ordered by date and hour."""
        from_date = from_date or utcnow().date()
        with self._guard("list student availability"):
            return (
                self.db.query(StudentAvailabilityModel)
                .filter(
                    StudentAvailabilityModel.student_id == student_id,
                    StudentAvailabilityModel.date >= from_date,
                )
                .order_by(StudentAvailabilityModel.date.asc(), StudentAvailabilityModel.hour_start.asc())
                .all()
            )

    def replace_for_student(
        self,
        student_id: str,
        slots: Sequence[StudentSlot],
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[StudentAvailabilityModel]:
        """
        Swap the student's free time from today onwards for `slots`.

        Past records are kept. The delete and the insert share one commit, so
        a failure leaves the previous set in place.
        """
        today = today or utcnow().date()
        if not slots:
            raise SchedulingValidationError("At least one availability slot is required")
        if any(slot.date < today for slot in slots):
            raise SchedulingValidationError("Availability cannot be submitted for past dates")

        ordered = sorted(slots, key=lambda s: (s.date, s.hour_start))
        for previous, current in zip(ordered, ordered[1:]):
            if previous.date == current.date and current.hour_start < previous.hour_end:
                raise SlotConflict(
                    f"Overlapping availability on {current.date} {current.hour_start}-{current.hour_end}"
                )

        records = [
            StudentAvailabilityModel(
                student_id=student_id,
                date=slot.date,
                hour_start=slot.hour_start,
                hour_end=slot.hour_end,
                notes=notes,
            )
            for slot in ordered
        ]
        with self._guard("replace student availability"):
            removed = (
                self.db.query(StudentAvailabilityModel)
                .filter(
                    StudentAvailabilityModel.student_id == student_id,
                    StudentAvailabilityModel.date >= today,
                )
                .delete(synchronize_session=False)
            )
            self.db.add_all(records)
            self.db.commit()
            for record in records:
                self.db.refresh(record)

        logger.info(f"[Availability] Student {student_id} free time replaced: "
                    f"{removed} removed, {len(records)} added")
        return records

    # === helpers ===

    @staticmethod
    def _validate_kind(kind: str) -> None:
        if kind == SlotKind.INTERVIEW.value:
            raise SchedulingValidationError("Interview slots are created by assigning an interview")

    def _overlapping(self, tutor_id: str, day: date, hour_start: int, hour_end: int) -> bool:
        with self._guard("check availability overlap"):
            existing = (
                self.db.query(AvailabilitySlotModel)
                .filter(
                    AvailabilitySlotModel.tutor_id == tutor_id,
                    AvailabilitySlotModel.date == day,
                    AvailabilitySlotModel.hour_start < hour_end,
                    AvailabilitySlotModel.hour_end > hour_start,
                )
                .first()
            )
        return existing is not None

    @staticmethod
    def _date_range(query, start_date: Optional[date], end_date: Optional[date]):
        if start_date:
            query = query.filter(AvailabilitySlotModel.date >= start_date)
        if end_date:
            query = query.filter(AvailabilitySlotModel.date <= end_date)
        return query
