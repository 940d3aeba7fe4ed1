from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import appointments, schemas
from ..auth import OwnerContext, get_owner_context
from ..database import get_db

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def _response(appointment, within_business_hours=None) -> schemas.AppointmentResponse:
    response = schemas.AppointmentResponse.model_validate(appointment)
    response.within_business_hours = within_business_hours
    return response


@router.post("/", response_model=schemas.AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: schemas.AppointmentWrite,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Book an appointment (business day, interval and overlap checks)"""
    appointment, within = appointments.create_appointment(db, ctx, data)
    return _response(appointment, within)


@router.get("/", response_model=List[schemas.AppointmentResponse])
def list_appointments(
    appointment_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Appointments of one day, all statuses"""
    return [_response(a) for a in appointments.list_appointments_for_date(db, ctx, appointment_date)]


@router.get("/{appointment_id}", response_model=schemas.AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    return _response(appointments.get_appointment(db, ctx, appointment_id))


@router.put("/{appointment_id}", response_model=schemas.AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: schemas.AppointmentWrite,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Edit a scheduled appointment; menus are re-snapshotted"""
    appointment, within = appointments.update_appointment(db, ctx, appointment_id, data)
    return _response(appointment, within)


@router.post("/{appointment_id}/status", response_model=schemas.AppointmentResponse)
def change_status(
    appointment_id: int,
    data: schemas.StatusChangeRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    return _response(appointments.change_status(db, ctx, appointment_id, data.status))


@router.post("/{appointment_id}/treatment-record", response_model=schemas.AppointmentResponse)
def link_treatment_record(
    appointment_id: int,
    data: schemas.TreatmentRecordLinkRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    return _response(appointments.link_treatment_record(db, ctx, appointment_id, data.treatment_record_id))


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Delete an appointment that has no treatment record yet"""
    appointments.delete_appointment(db, ctx, appointment_id)
    return None
