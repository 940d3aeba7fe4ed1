from datetime import date, time

import pytest

from salon_booking import models
from salon_booking.exceptions import ConflictError, ValidationError
from salon_booking.slot_conflict import (
    LEGACY_DEFAULT_DURATION_MINUTES,
    ExistingBooking,
    ensure_slot_available,
    find_conflict,
    load_existing_bookings,
)

TEN_TO_ELEVEN = ExistingBooking(appointment_id=1, customer_name="Sato Yui", start=600, end=660)


class TestFindConflict:

    def test_overlapping_candidate(self):
        conflict = find_conflict(630, 690, [TEN_TO_ELEVEN])
        assert conflict is not None
        assert conflict.appointment_id == 1
        assert "Sato Yui" in conflict.message
        assert "10:00" in conflict.message

    def test_touching_after_is_not_a_conflict(self):
        assert find_conflict(660, 720, [TEN_TO_ELEVEN]) is None

    def test_touching_before_is_not_a_conflict(self):
        assert find_conflict(540, 600, [TEN_TO_ELEVEN]) is None

    def test_containing_candidate(self):
        assert find_conflict(540, 720, [TEN_TO_ELEVEN]) is not None

    @pytest.mark.parametrize("start, end", [(600, 600), (660, 600)])
    def test_empty_or_reversed_interval_rejected(self, start, end):
        with pytest.raises(ValidationError):
            find_conflict(start, end, [])

    def test_reversed_interval_rejected_before_overlap(self):
        class Exploding:
            def __iter__(self):
                raise AssertionError("overlap computed before validation")

        with pytest.raises(ValidationError):
            find_conflict(700, 650, Exploding())

    def test_legacy_row_without_end_lasts_one_hour(self):
        legacy = ExistingBooking(appointment_id=2, customer_name="Legacy", start=600)
        assert legacy.effective_end == 600 + LEGACY_DEFAULT_DURATION_MINUTES
        assert find_conflict(650, 700, [legacy]) is not None
        assert find_conflict(660, 700, [legacy]) is None

    def test_first_conflict_is_returned(self):
        first = ExistingBooking(appointment_id=3, customer_name="First", start=600, end=660)
        second = ExistingBooking(appointment_id=4, customer_name="Second", start=630, end=700)
        assert find_conflict(620, 640, [first, second]).appointment_id == 3


def _appointment(salon, customer, start, end, status="scheduled", day=date(2025, 5, 6)):
    return models.Appointment(
        salon_id=salon.id,
        customer_id=customer.id,
        appointment_date=day,
        start_time=start,
        end_time=end,
        status=status,
    )


class TestEnsureSlotAvailable:

    def test_conflict_names_customer(self, db, salon, customer):
        db.add(_appointment(salon, customer, time(10, 0), time(11, 0)))
        db.commit()

        with pytest.raises(ConflictError) as exc:
            ensure_slot_available(db, salon.id, date(2025, 5, 6), 630, 690)
        assert "Sato Yui" in exc.value.message

        ensure_slot_available(db, salon.id, date(2025, 5, 6), 660, 720)

    def test_cancelled_bookings_are_ignored(self, db, salon, customer):
        db.add(_appointment(salon, customer, time(10, 0), time(11, 0), status="cancelled"))
        db.commit()

        ensure_slot_available(db, salon.id, date(2025, 5, 6), 630, 690)

    def test_completed_bookings_still_block(self, db, salon, customer):
        db.add(_appointment(salon, customer, time(10, 0), time(11, 0), status="completed"))
        db.commit()

        with pytest.raises(ConflictError):
            ensure_slot_available(db, salon.id, date(2025, 5, 6), 630, 690)

    def test_edited_appointment_is_excluded(self, db, salon, customer):
        appointment = _appointment(salon, customer, time(10, 0), time(11, 0))
        db.add(appointment)
        db.commit()

        ensure_slot_available(db, salon.id, date(2025, 5, 6), 630, 690, exclude_appointment_id=appointment.id)

    def test_other_salons_and_dates_are_isolated(self, db, salon, other_salon, customer):
        other_customer = models.Customer(salon_id=other_salon.id, last_name="Kato", first_name="Ren")
        db.add(other_customer)
        db.commit()
        db.add(_appointment(other_salon, other_customer, time(10, 0), time(11, 0)))
        db.add(_appointment(salon, customer, time(10, 0), time(11, 0), day=date(2025, 5, 7)))
        db.commit()

        ensure_slot_available(db, salon.id, date(2025, 5, 6), 630, 690)

    def test_loaded_bookings_keep_legacy_rows(self, db, salon, customer):
        db.add(_appointment(salon, customer, time(14, 0), None))
        db.add(_appointment(salon, customer, time(9, 0), time(9, 30)))
        db.commit()

        bookings = load_existing_bookings(db, salon.id, date(2025, 5, 6))
        assert [b.start for b in bookings] == [540, 840]
        assert bookings[1].end is None
        assert bookings[1].effective_end == 900
