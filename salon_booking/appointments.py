"""
Appointment lifecycle: booking, editing, status transitions and deletion
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas
from .auth import OwnerContext
from .business_hours import (
    WeeklySchedule, is_business_day, is_within_business_hours, parse_holidays, time_to_minutes,
)
from .exceptions import NotFoundError, ValidationError
from .slot_conflict import ensure_slot_available

logger = logging.getLogger(__name__)

# Allowed transitions; completed and cancelled are terminal
TRANSITIONS = {
    "scheduled": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


def get_salon(db: Session, ctx: OwnerContext) -> models.Salon:
    salon = db.query(models.Salon).filter(models.Salon.id == ctx.salon_id).first()
    if not salon:
        raise NotFoundError("Salon not found")
    return salon


def get_appointment(db: Session, ctx: OwnerContext, appointment_id: int) -> models.Appointment:
    appointment = db.query(models.Appointment).filter(
        models.Appointment.id == appointment_id,
        models.Appointment.salon_id == ctx.salon_id,
    ).first()
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


def list_appointments_for_date(db: Session, ctx: OwnerContext, appointment_date: date) -> List[models.Appointment]:
    return db.query(models.Appointment).filter(
        models.Appointment.salon_id == ctx.salon_id,
        models.Appointment.appointment_date == appointment_date,
    ).order_by(models.Appointment.start_time).all()


def _get_customer(db: Session, ctx: OwnerContext, customer_id: int) -> models.Customer:
    customer = db.query(models.Customer).filter(
        models.Customer.id == customer_id,
        models.Customer.salon_id == ctx.salon_id,
    ).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def _validate_slot(
    db: Session,
    ctx: OwnerContext,
    data: schemas.AppointmentWrite,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    """Calendar, interval and overlap checks in that order.

    Returns whether the slot lies inside opening hours; being outside them
    on an open day is allowed.
    """
    salon = get_salon(db, ctx)
    schedule = WeeklySchedule.from_dict(salon.business_hours)
    holidays = parse_holidays(salon.holidays)

    if not is_business_day(schedule, data.appointment_date, holidays):
        raise ValidationError(f"{data.appointment_date.isoformat()} is not a business day")

    start = time_to_minutes(data.start_time)
    end = time_to_minutes(data.end_time)
    ensure_slot_available(db, ctx.salon_id, data.appointment_date, start, end, exclude_appointment_id)

    within = is_within_business_hours(schedule, data.appointment_date, start, end)
    if not within:
        logger.info(f"⚠️ Booking outside business hours: salon={ctx.salon_id} date={data.appointment_date}")
    return within


def _build_menu_snapshots(db: Session, ctx: OwnerContext, menu_ids: List[int]) -> List[models.AppointmentMenu]:
    """Copy name/price/duration of the selected menus as they are right now"""
    if not menu_ids:
        return []

    menus = db.query(models.TreatmentMenu).filter(
        models.TreatmentMenu.salon_id == ctx.salon_id,
        models.TreatmentMenu.id.in_(menu_ids),
    ).all()
    menus_by_id = {menu.id: menu for menu in menus}

    missing = [menu_id for menu_id in menu_ids if menu_id not in menus_by_id]
    if missing:
        raise NotFoundError(f"Menu not found: {', '.join(str(m) for m in missing)}")

    snapshots = []
    for index, menu_id in enumerate(menu_ids):
        menu = menus_by_id[menu_id]
        snapshots.append(models.AppointmentMenu(
            menu_id=menu.id,
            menu_name_snapshot=menu.name,
            price_snapshot=menu.price,
            duration_minutes_snapshot=menu.duration_minutes,
            sort_order=index,
        ))
    return snapshots


def _joined_menu_names(snapshots: List[models.AppointmentMenu]) -> Optional[str]:
    names = [snapshot.menu_name_snapshot for snapshot in snapshots if snapshot.menu_name_snapshot]
    return ", ".join(names) or None


def create_appointment(db: Session, ctx: OwnerContext, data: schemas.AppointmentWrite):
    """Book a new appointment; returns (appointment, within_business_hours)"""
    _get_customer(db, ctx, data.customer_id)
    within = _validate_slot(db, ctx, data)
    snapshots = _build_menu_snapshots(db, ctx, data.menu_ids)

    appointment = models.Appointment(
        salon_id=ctx.salon_id,
        customer_id=data.customer_id,
        appointment_date=data.appointment_date,
        start_time=data.start_time,
        end_time=data.end_time,
        status="scheduled",
        source=data.source,
        memo=data.memo or None,
        menu_name_snapshot=_joined_menu_names(snapshots),
    )
    appointment.menus = snapshots
    db.add(appointment)
    db.commit()
    db.refresh(appointment)

    logger.info(f"✅ Appointment {appointment.id} booked for salon {ctx.salon_id}")
    return appointment, within


def update_appointment(db: Session, ctx: OwnerContext, appointment_id: int, data: schemas.AppointmentWrite):
    """Edit a scheduled appointment; the menu snapshot set is replaced as a whole"""
    appointment = get_appointment(db, ctx, appointment_id)
    if appointment.status != "scheduled":
        raise ValidationError(f"A {appointment.status} appointment cannot be edited")

    _get_customer(db, ctx, data.customer_id)
    within = _validate_slot(db, ctx, data, exclude_appointment_id=appointment.id)
    snapshots = _build_menu_snapshots(db, ctx, data.menu_ids)

    appointment.customer_id = data.customer_id
    appointment.appointment_date = data.appointment_date
    appointment.start_time = data.start_time
    appointment.end_time = data.end_time
    appointment.source = data.source
    appointment.memo = data.memo or None
    appointment.menu_name_snapshot = _joined_menu_names(snapshots)

    # delete-orphan drops the old rows in the same flush
    appointment.menus = snapshots
    db.commit()
    db.refresh(appointment)
    return appointment, within


def change_status(db: Session, ctx: OwnerContext, appointment_id: int, new_status: str) -> models.Appointment:
    appointment = get_appointment(db, ctx, appointment_id)
    if new_status not in TRANSITIONS.get(appointment.status, set()):
        raise ValidationError(f"Cannot change status from {appointment.status} to {new_status}")

    appointment.status = new_status
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} -> {new_status}")
    return appointment


def link_treatment_record(db: Session, ctx: OwnerContext, appointment_id: int, record_id: int) -> models.Appointment:
    appointment = get_appointment(db, ctx, appointment_id)
    record = db.query(models.TreatmentRecord).filter(
        models.TreatmentRecord.id == record_id,
        models.TreatmentRecord.salon_id == ctx.salon_id,
    ).first()
    if not record:
        raise NotFoundError("Treatment record not found")

    appointment.treatment_record_id = record.id
    db.commit()
    db.refresh(appointment)
    return appointment


def delete_appointment(db: Session, ctx: OwnerContext, appointment_id: int) -> None:
    appointment = get_appointment(db, ctx, appointment_id)
    if appointment.treatment_record_id is not None:
        raise ValidationError("This appointment is linked to a treatment record and cannot be deleted")

    db.delete(appointment)
    db.commit()
    logger.info(f"🗑️ Appointment {appointment_id} deleted for salon {ctx.salon_id}")
