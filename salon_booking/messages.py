"""
Message text for confirmations, reminders and test sends

Pure functions: no database or network access.
"""
from dataclasses import dataclass, field
from datetime import date, time
from typing import List, Union

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass
class AppointmentInfo:
    customer_name: str
    appointment_date: Union[date, str]
    start_time: Union[time, str]
    salon_name: str
    menu_names: List[str] = field(default_factory=list)


def format_date(value: Union[date, str]) -> str:
    """date or "YYYY-MM-DD" -> "May 6 (Tue)" (civil date, no timezone math)"""
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return f"{MONTH_NAMES[value.month - 1]} {value.day} ({DAY_NAMES[value.weekday()]})"


def format_time(value: Union[time, str]) -> str:
    # "HH:MM:SS" or "HH:MM" -> "HH:MM"
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return value[:5]


def _menus_text(menu_names: List[str]) -> str:
    return ", ".join(menu_names) if menu_names else "Not specified"


def text_message(text: str) -> dict:
    return {"type": "text", "text": text}


def build_confirmation_message(info: AppointmentInfo) -> dict:
    """Sent right after a booking is made"""
    return text_message("\n".join([
        f"Dear {info.customer_name},",
        "",
        "Your booking has been confirmed.",
        "",
        f"Date: {format_date(info.appointment_date)} {format_time(info.start_time)}~",
        f"Menu: {_menus_text(info.menu_names)}",
        "",
        "We look forward to seeing you.",
        info.salon_name,
    ]))


def build_reminder_message(info: AppointmentInfo) -> dict:
    """Sent the day before the appointment"""
    return text_message("\n".join([
        f"Dear {info.customer_name},",
        "",
        "This is a reminder of your booking tomorrow.",
        "",
        f"Date: {format_date(info.appointment_date)} {format_time(info.start_time)}~",
        f"Menu: {_menus_text(info.menu_names)}",
        "",
        f"See you at {info.salon_name}.",
    ]))


def build_test_message(salon_name: str) -> dict:
    return text_message(
        f"Test message from {salon_name}. If you received this, the LINE connection is working."
    )
