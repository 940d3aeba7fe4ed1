"""
Overlap detection between a proposed booking and a salon's existing bookings
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from . import models
from .business_hours import minutes_to_time, time_to_minutes
from .exceptions import ConflictError, ValidationError

# Rows written before end times were required are treated as one hour long.
# New writes must always carry an end time.
LEGACY_DEFAULT_DURATION_MINUTES = 60


@dataclass(frozen=True)
class ExistingBooking:
    appointment_id: int
    customer_name: str
    start: int
    end: Optional[int] = None

    @property
    def effective_end(self) -> int:
        if self.end is not None:
            return self.end
        return self.start + LEGACY_DEFAULT_DURATION_MINUTES


@dataclass(frozen=True)
class SlotConflict:
    appointment_id: int
    customer_name: str
    start: int

    @property
    def message(self) -> str:
        return (
            f"{self.customer_name} already has a booking in this time slot "
            f"(from {minutes_to_time(self.start)})"
        )


def validate_interval(start: int, end: int) -> None:
    if end <= start:
        raise ValidationError("End time must be after start time")


def find_conflict(start: int, end: int, existing: Iterable[ExistingBooking]) -> Optional[SlotConflict]:
    """First existing booking overlapping [start, end), or None.

    Intervals are half-open, so a booking ending exactly when another starts
    does not collide.
    """
    validate_interval(start, end)
    for booking in existing:
        if start < booking.effective_end and booking.start < end:
            return SlotConflict(booking.appointment_id, booking.customer_name, booking.start)
    return None


def load_existing_bookings(
    db: Session,
    salon_id: int,
    appointment_date: date,
    exclude_appointment_id: Optional[int] = None,
) -> List[ExistingBooking]:
    """Non-cancelled bookings of one salon on one date, ordered by start time"""
    query = db.query(models.Appointment).filter(
        models.Appointment.salon_id == salon_id,
        models.Appointment.appointment_date == appointment_date,
        models.Appointment.status != "cancelled",
    )
    if exclude_appointment_id is not None:
        query = query.filter(models.Appointment.id != exclude_appointment_id)

    bookings = []
    for appointment in query.order_by(models.Appointment.start_time, models.Appointment.id).all():
        customer = appointment.customer
        bookings.append(ExistingBooking(
            appointment_id=appointment.id,
            customer_name=customer.display_name if customer else "another customer",
            start=time_to_minutes(appointment.start_time),
            end=time_to_minutes(appointment.end_time) if appointment.end_time else None,
        ))
    return bookings


def ensure_slot_available(
    db: Session,
    salon_id: int,
    appointment_date: date,
    start: int,
    end: int,
    exclude_appointment_id: Optional[int] = None,
) -> None:
    """Raise ConflictError if the slot collides with an existing booking.

    This is a plain read-then-write check with no lock: two concurrent
    requests for overlapping slots can both pass it.
    """
    validate_interval(start, end)
    existing = load_existing_bookings(db, salon_id, appointment_date, exclude_appointment_id)
    conflict = find_conflict(start, end, existing)
    if conflict:
        raise ConflictError(conflict.message)
