"""
Weekly opening schedule, holiday overrides and the month calendar grid
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Union

from . import config

# date.weekday(): 0=Monday ... 6=Sunday
ORDERED_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

GRID_CELLS = 42

# Salon dates are civil dates in Japan
JST = timezone(timedelta(hours=config.NOTIFICATION_UTC_OFFSET_HOURS))


@dataclass(frozen=True)
class DaySchedule:
    is_open: bool
    open_time: str = "10:00"
    close_time: str = "20:00"

    @classmethod
    def from_dict(cls, data: dict) -> "DaySchedule":
        return cls(
            is_open=bool(data.get("is_open", False)),
            open_time=data.get("open_time", "10:00"),
            close_time=data.get("close_time", "20:00"),
        )

    def to_dict(self) -> dict:
        return {"is_open": self.is_open, "open_time": self.open_time, "close_time": self.close_time}


DEFAULT_BUSINESS_HOURS: Dict[str, DaySchedule] = {
    "monday": DaySchedule(is_open=True),
    "tuesday": DaySchedule(is_open=True),
    "wednesday": DaySchedule(is_open=True),
    "thursday": DaySchedule(is_open=True),
    "friday": DaySchedule(is_open=True),
    "saturday": DaySchedule(is_open=True),
    "sunday": DaySchedule(is_open=False),
}


class WeeklySchedule:
    """Exactly one DaySchedule per weekday; missing days use the default"""

    def __init__(self, days: Optional[Dict[str, DaySchedule]] = None):
        days = days or {}
        self.days = {key: days.get(key, DEFAULT_BUSINESS_HOURS[key]) for key in ORDERED_DAYS}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "WeeklySchedule":
        if not data:
            return cls()
        return cls({key: DaySchedule.from_dict(value) for key, value in data.items() if key in ORDERED_DAYS})

    def to_dict(self) -> dict:
        return {key: schedule.to_dict() for key, schedule in self.days.items()}

    def for_date(self, day: date) -> DaySchedule:
        return self.days[ORDERED_DAYS[day.weekday()]]


@dataclass(frozen=True)
class CalendarDay:
    date: date
    day: int
    is_current_month: bool
    is_past: bool
    is_weekly_holiday: bool
    is_irregular_holiday: bool


def time_to_minutes(value: Union[str, time]) -> int:
    """"HH:MM" (or "HH:MM:SS", or a time) -> minutes since midnight"""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    hours, minutes = value[:5].split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_holidays(values: Optional[Iterable]) -> Set[date]:
    """Holiday list as stored on the salon ("YYYY-MM-DD" strings) -> set of dates"""
    result = set()
    for value in values or []:
        result.add(value if isinstance(value, date) else date.fromisoformat(value))
    return result


def is_business_day(schedule: Optional[WeeklySchedule], day: date, holidays: Optional[Set[date]] = None) -> bool:
    # Holidays only ever close a day
    schedule = schedule or WeeklySchedule()
    if not schedule.for_date(day).is_open:
        return False
    return day not in (holidays or set())


def is_within_business_hours(schedule: Optional[WeeklySchedule], day: date, start: int, end: int) -> bool:
    """True if [start, end) minutes lies inside opening hours of an open weekday"""
    day_schedule = (schedule or WeeklySchedule()).for_date(day)
    if not day_schedule.is_open:
        return False
    return start >= time_to_minutes(day_schedule.open_time) and end <= time_to_minutes(day_schedule.close_time)


def today_in_jst(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(JST).date()


def build_month_grid(
    year: int,
    month: int,
    schedule: Optional[WeeklySchedule],
    holidays: Optional[Set[date]] = None,
    today: Optional[date] = None,
) -> List[CalendarDay]:
    """Monday-first 6x7 grid for the month, padded with the neighbouring months"""
    schedule = schedule or WeeklySchedule()
    holidays = holidays or set()
    today = today or today_in_jst()

    first_day = date(year, month, 1)
    grid_start = first_day - timedelta(days=first_day.weekday())

    cells = []
    for offset in range(GRID_CELLS):
        current = grid_start + timedelta(days=offset)
        cells.append(CalendarDay(
            date=current,
            day=current.day,
            is_current_month=current.month == month and current.year == year,
            is_past=current < today,
            is_weekly_holiday=not schedule.for_date(current).is_open,
            is_irregular_holiday=current in holidays,
        ))
    return cells
