from pydantic import BaseModel, Field
from datetime import date, datetime, time
from typing import Optional, List, Literal

# Appointments
class AppointmentWrite(BaseModel):
    customer_id: int
    appointment_date: date
    start_time: time
    end_time: time
    menu_ids: List[int] = Field(default_factory=list)
    source: Optional[str] = Field(None, max_length=50)
    memo: Optional[str] = None

class AppointmentMenuResponse(BaseModel):
    menu_id: Optional[int] = None
    menu_name_snapshot: str
    price_snapshot: Optional[int] = None
    duration_minutes_snapshot: Optional[int] = None
    sort_order: int

    class Config:
        from_attributes = True

class AppointmentResponse(BaseModel):
    id: int
    customer_id: int
    appointment_date: date
    start_time: time
    end_time: Optional[time] = None
    status: str
    source: Optional[str] = None
    memo: Optional[str] = None
    menu_name_snapshot: Optional[str] = None
    treatment_record_id: Optional[int] = None
    menus: List[AppointmentMenuResponse] = []
    within_business_hours: Optional[bool] = None

    class Config:
        from_attributes = True

class StatusChangeRequest(BaseModel):
    status: Literal["completed", "cancelled"]

class TreatmentRecordLinkRequest(BaseModel):
    treatment_record_id: int

# Calendar
class CalendarDayResponse(BaseModel):
    date: date
    day: int
    is_current_month: bool
    is_past: bool
    is_weekly_holiday: bool
    is_irregular_holiday: bool

    class Config:
        from_attributes = True

class BusinessDayResponse(BaseModel):
    date: date
    is_business_day: bool

# LINE channel
class LineConfigSaveRequest(BaseModel):
    channel_id: str = ""
    channel_secret: str = ""
    channel_access_token: str = ""

class LineConfigToggleRequest(BaseModel):
    is_active: Optional[bool] = None
    reminder_enabled: Optional[bool] = None
    confirmation_enabled: Optional[bool] = None

class LineConfigResponse(BaseModel):
    id: int
    channel_id: str
    webhook_token: str
    is_active: bool
    reminder_enabled: bool
    confirmation_enabled: bool

    class Config:
        from_attributes = True

class LineLinkRequest(BaseModel):
    link_id: int
    customer_id: Optional[int] = None

class LineLinkResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    line_user_id: str
    display_name: Optional[str] = None
    picture_url: Optional[str] = None
    is_following: bool
    linked_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class NotifyAppointmentRequest(BaseModel):
    appointment_id: int

class TestMessageRequest(BaseModel):
    line_user_id: str = ""

class DispatchResponse(BaseModel):
    status: Literal["sent", "failed", "skipped"]
    reason: Optional[str] = None
    error: Optional[str] = None

class FollowerSyncResponse(BaseModel):
    added: int
    total: int

class ReminderRunResponse(BaseModel):
    sent: int
    failed: int
    date: str
