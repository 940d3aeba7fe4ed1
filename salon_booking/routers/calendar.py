from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas
from ..appointments import get_salon
from ..auth import OwnerContext, get_owner_context
from ..business_hours import WeeklySchedule, build_month_grid, is_business_day, parse_holidays
from ..database import get_db

router = APIRouter(prefix="/api/calendar", tags=["Calendar"])


@router.get("/business-day/{day}", response_model=schemas.BusinessDayResponse)
def get_business_day(
    day: date,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Whether the salon takes bookings on this date"""
    salon = get_salon(db, ctx)
    schedule = WeeklySchedule.from_dict(salon.business_hours)
    return schemas.BusinessDayResponse(
        date=day,
        is_business_day=is_business_day(schedule, day, parse_holidays(salon.holidays)),
    )


@router.get("/{year}/{month}", response_model=List[schemas.CalendarDayResponse])
def get_month_calendar(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """42-day Monday-first grid for the month"""
    if month < 1 or month > 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
    if year < 1900 or year > 2999:
        raise HTTPException(status_code=400, detail="Year is out of range")

    salon = get_salon(db, ctx)
    schedule = WeeklySchedule.from_dict(salon.business_hours)
    return build_month_grid(year, month, schedule, parse_holidays(salon.holidays))
