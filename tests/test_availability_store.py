from datetime import date
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from interview_scheduling.base.exceptions import (
    SchedulingValidationError,
    SlotConflict,
    SlotNotFound,
    StorageError,
)
from interview_scheduling.base.models import CreateSlotRequest, StudentSlot
from interview_scheduling.models.availability_slot import SlotKind

from conftest import INTERVIEW_DAY, OTHER_TUTOR, TUTOR


class TestCreateSlot:
    def test_creates_available_slot(self, slot_factory):
        slot = slot_factory()

        assert slot.id
        assert slot.tutor_id == TUTOR
        assert slot.kind == SlotKind.AVAILABLE.value
        assert slot.interview_id is None

    def test_rejects_overlap_for_same_tutor(self, slot_factory):
        slot_factory(hour_start=9, hour_end=11)

        with pytest.raises(SlotConflict, match="Overlapping availability"):
            slot_factory(hour_start=10, hour_end=12)

    def test_adjacent_hours_do_not_overlap(self, slot_factory):
        slot_factory(hour_start=9, hour_end=10)
        second = slot_factory(hour_start=10, hour_end=11)

        assert second.hour_start == 10

    def test_other_tutor_may_hold_same_hours(self, slot_factory):
        slot_factory(tutor_id=TUTOR)
        other = slot_factory(tutor_id=OTHER_TUTOR)

        assert other.tutor_id == OTHER_TUTOR

    def test_blocked_slots_still_occupy_hours(self, slot_factory):
        slot_factory(hour_start=9, hour_end=12, kind="blocked")

        with pytest.raises(SlotConflict):
            slot_factory(hour_start=11, hour_end=13)

    def test_interview_kind_cannot_be_created_directly(self, availability_store):
        req = CreateSlotRequest.model_construct(date=INTERVIEW_DAY, hour_start=9, hour_end=10, kind="interview")

        with pytest.raises(SchedulingValidationError):
            availability_store.create_slot(TUTOR, req)

    def test_hour_end_must_follow_hour_start(self):
        with pytest.raises(ValidationError):
            CreateSlotRequest(date=INTERVIEW_DAY, hour_start=10, hour_end=10)

    def test_hour_bounds(self):
        with pytest.raises(ValidationError):
            CreateSlotRequest(date=INTERVIEW_DAY, hour_start=23, hour_end=25)


class TestBulkCreate:
    def test_creates_all_slots(self, availability_store):
        slots = availability_store.create_slots_bulk(
            TUTOR,
            [
                CreateSlotRequest(date=INTERVIEW_DAY, hour_start=9, hour_end=10),
                CreateSlotRequest(date=INTERVIEW_DAY, hour_start=14, hour_end=16),
            ],
        )

        assert len(slots) == 2
        assert len(availability_store.list_for_tutor(TUTOR)) == 2

    def test_overlap_inside_batch_creates_nothing(self, availability_store):
        with pytest.raises(SlotConflict):
            availability_store.create_slots_bulk(
                TUTOR,
                [
                    CreateSlotRequest(date=INTERVIEW_DAY, hour_start=9, hour_end=11),
                    CreateSlotRequest(date=INTERVIEW_DAY, hour_start=10, hour_end=12),
                ],
            )

        assert availability_store.list_for_tutor(TUTOR) == []

    def test_overlap_with_existing_creates_nothing(self, availability_store, slot_factory):
        slot_factory(hour_start=15, hour_end=16)

        with pytest.raises(SlotConflict):
            availability_store.create_slots_bulk(
                TUTOR,
                [
                    CreateSlotRequest(date=INTERVIEW_DAY, hour_start=9, hour_end=10),
                    CreateSlotRequest(date=INTERVIEW_DAY, hour_start=15, hour_end=17),
                ],
            )

        assert len(availability_store.list_for_tutor(TUTOR)) == 1


class TestListing:
    def test_list_for_tutor_filters_by_date_range(self, availability_store, slot_factory):
        slot_factory(day=date(2025, 3, 1))
        slot_factory(day=date(2025, 3, 5))
        slot_factory(day=date(2025, 3, 9))

        slots = availability_store.list_for_tutor(TUTOR, date(2025, 3, 2), date(2025, 3, 9))

        assert [s.date for s in slots] == [date(2025, 3, 5), date(2025, 3, 9)]

    def test_list_is_ordered_by_date_then_hour(self, availability_store, slot_factory):
        slot_factory(day=date(2025, 3, 2), hour_start=8, hour_end=9)
        slot_factory(day=date(2025, 3, 1), hour_start=15, hour_end=16)
        slot_factory(day=date(2025, 3, 1), hour_start=9, hour_end=10)

        slots = availability_store.list_for_tutor(TUTOR)

        assert [(s.date.day, s.hour_start) for s in slots] == [(1, 9), (1, 15), (2, 8)]

    def test_grouped_by_tutor(self, availability_store, slot_factory):
        slot_factory(tutor_id=TUTOR)
        slot_factory(tutor_id=OTHER_TUTOR)
        slot_factory(tutor_id=OTHER_TUTOR, hour_start=11, hour_end=12)

        grouped = availability_store.list_grouped_by_tutor()

        assert set(grouped) == {TUTOR, OTHER_TUTOR}
        assert len(grouped[OTHER_TUTOR]) == 2


class TestDeleteSlot:
    def test_owner_can_delete(self, availability_store, slot_factory):
        slot = slot_factory()

        availability_store.delete_slot(slot.id, TUTOR)

        assert availability_store.get_slot(slot.id) is None

    def test_other_tutor_cannot_delete(self, availability_store, slot_factory):
        slot = slot_factory()

        with pytest.raises(SchedulingValidationError):
            availability_store.delete_slot(slot.id, OTHER_TUTOR)

    def test_missing_slot(self, availability_store):
        with pytest.raises(SlotNotFound):
            availability_store.delete_slot("does-not-exist", TUTOR)

    def test_slot_holding_interview_is_protected(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory()
        interview = interview_factory()
        assert availability_store.reserve_slot(slot.id, TUTOR, interview.id)

        with pytest.raises(SlotConflict):
            availability_store.delete_slot(slot.id, TUTOR)


class TestReservation:
    def test_reserve_links_slot(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory()
        interview = interview_factory()

        assert availability_store.reserve_slot(slot.id, TUTOR, interview.id) is True

        stored = availability_store.get_slot(slot.id)
        assert stored.kind == SlotKind.INTERVIEW.value
        assert stored.interview_id == interview.id

    def test_second_interview_loses(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory()
        first = interview_factory()
        second = interview_factory(student_id="student-2")
        availability_store.reserve_slot(slot.id, TUTOR, first.id)

        assert availability_store.reserve_slot(slot.id, TUTOR, second.id) is False
        assert availability_store.get_slot(slot.id).interview_id == first.id

    def test_reserving_again_for_same_interview_succeeds(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory()
        interview = interview_factory()
        availability_store.reserve_slot(slot.id, TUTOR, interview.id)

        assert availability_store.reserve_slot(slot.id, TUTOR, interview.id) is True

    def test_blocked_slot_cannot_be_reserved(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory(kind="blocked")
        interview = interview_factory()

        assert availability_store.reserve_slot(slot.id, TUTOR, interview.id) is False

    def test_wrong_tutor_cannot_reserve(self, availability_store, slot_factory, interview_factory):
        slot = slot_factory()
        interview = interview_factory()

        assert availability_store.reserve_slot(slot.id, OTHER_TUTOR, interview.id) is False

    def test_release_returns_slots_to_available(self, availability_store, slot_factory, interview_factory):
        first = slot_factory(hour_start=9, hour_end=10)
        second = slot_factory(hour_start=10, hour_end=11)
        interview = interview_factory()
        availability_store.reserve_slot(first.id, TUTOR, interview.id)
        availability_store.reserve_slot(second.id, TUTOR, interview.id)

        released = availability_store.release_for_interview(interview.id, keep_slot_id=second.id)

        assert released == 1
        assert availability_store.get_slot(first.id).kind == SlotKind.AVAILABLE.value
        assert availability_store.get_slot(first.id).interview_id is None
        assert availability_store.slots_for_interview(interview.id)[0].id == second.id

    def test_release_without_slots_is_noop(self, availability_store, interview_factory):
        assert availability_store.release_for_interview(interview_factory().id) == 0


class TestStudentAvailability:
    STUDENT = "student-1"

    def _slot(self, day, hour_start=9, hour_end=10):
        return StudentSlot(date=day, hour_start=hour_start, hour_end=hour_end)

    def test_listed_in_date_and_hour_order(self, availability_store):
        availability_store.replace_for_student(
            self.STUDENT,
            [
                self._slot(date(2025, 3, 4), 14, 16),
                self._slot(date(2025, 3, 2), 18, 19),
                self._slot(date(2025, 3, 4), 9, 11),
            ],
            today=date(2025, 3, 1),
        )

        records = availability_store.list_for_student(self.STUDENT, from_date=date(2025, 3, 1))

        assert [(r.date.day, r.hour_start) for r in records] == [(2, 18), (4, 9), (4, 14)]

    def test_only_future_records_are_listed(self, availability_store):
        availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 1))], today=date(2025, 2, 20))
        availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 5))], today=date(2025, 3, 3))

        upcoming = availability_store.list_for_student(self.STUDENT, from_date=date(2025, 3, 3))
        everything = availability_store.list_for_student(self.STUDENT, from_date=date(2025, 1, 1))

        assert [r.date for r in upcoming] == [date(2025, 3, 5)]
        # the earlier submission is history by then and survives the replace
        assert [r.date for r in everything] == [date(2025, 3, 1), date(2025, 3, 5)]

    def test_replace_swaps_the_whole_future_set(self, availability_store):
        today = date(2025, 3, 1)
        availability_store.replace_for_student(
            self.STUDENT, [self._slot(date(2025, 3, 2)), self._slot(date(2025, 3, 3))], today=today
        )

        records = availability_store.replace_for_student(
            self.STUDENT, [self._slot(date(2025, 3, 6), 12, 14)], notes="Evenings work too", today=today
        )

        stored = availability_store.list_for_student(self.STUDENT, from_date=today)
        assert [r.id for r in stored] == [r.id for r in records]
        assert stored[0].date == date(2025, 3, 6)
        assert stored[0].notes == "Evenings work too"

    def test_other_students_are_untouched(self, availability_store):
        today = date(2025, 3, 1)
        availability_store.replace_for_student("student-2", [self._slot(date(2025, 3, 2))], today=today)

        availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 2))], today=today)

        assert len(availability_store.list_for_student("student-2", from_date=today)) == 1

    def test_overlap_rejected_and_previous_set_kept(self, availability_store):
        today = date(2025, 3, 1)
        availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 2))], today=today)

        with pytest.raises(SlotConflict):
            availability_store.replace_for_student(
                self.STUDENT,
                [self._slot(date(2025, 3, 4), 9, 12), self._slot(date(2025, 3, 4), 11, 13)],
                today=today,
            )

        assert [r.date for r in availability_store.list_for_student(self.STUDENT, from_date=today)] == [
            date(2025, 3, 2)
        ]

    def test_past_dates_rejected(self, availability_store):
        with pytest.raises(SchedulingValidationError, match="past dates"):
            availability_store.replace_for_student(
                self.STUDENT, [self._slot(date(2025, 2, 28))], today=date(2025, 3, 1)
            )

    def test_empty_submission_rejected(self, availability_store):
        with pytest.raises(SchedulingValidationError):
            availability_store.replace_for_student(self.STUDENT, [], today=date(2025, 3, 1))

    def test_storage_failure_keeps_previous_set(self, availability_store, db):
        today = date(2025, 3, 1)
        availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 2))], today=today)

        with patch.object(db, "add_all", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(StorageError):
                availability_store.replace_for_student(self.STUDENT, [self._slot(date(2025, 3, 9))], today=today)

        assert [r.date for r in availability_store.list_for_student(self.STUDENT, from_date=today)] == [
            date(2025, 3, 2)
        ]

    def test_hour_order_validated(self):
        with pytest.raises(ValidationError):
            StudentSlot(date=INTERVIEW_DAY, hour_start=15, hour_end=14)
