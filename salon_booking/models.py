"""
Database models for the salon booking and LINE notification backend
"""
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from .database import Base

APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled")
MESSAGE_TYPES = ("confirmation", "reminder", "test")
MESSAGE_STATUSES = ("sent", "failed")


class Salon(Base):
    """Tenant root"""
    __tablename__ = "salons"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    # {"monday": {"is_open": true, "open_time": "10:00", "close_time": "20:00"}, ...}
    business_hours = Column(JSON, nullable=True)
    # ["2025-05-05", ...]
    holidays = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    line_config = relationship("SalonLineConfig", back_populates="salon", uselist=False,
                               cascade="all, delete-orphan")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    last_name = Column(String(50), nullable=False)
    first_name = Column(String(50), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def display_name(self) -> str:
        return f"{self.last_name} {self.first_name}"


class TreatmentMenu(Base):
    """Live menu catalog; appointments keep their own snapshots"""
    __tablename__ = "treatment_menus"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class TreatmentRecord(Base):
    __tablename__ = "treatment_records"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    appointment_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    # Nullable for legacy rows only
    end_time = Column(Time, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")
    # scheduled - initial
    # completed - terminal
    # cancelled - terminal
    source = Column(String(50), nullable=True)
    memo = Column(Text, nullable=True)
    menu_name_snapshot = Column(String(500), nullable=True)
    treatment_record_id = Column(Integer, ForeignKey("treatment_records.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship("Customer")
    menus = relationship(
        "AppointmentMenu",
        back_populates="appointment",
        order_by="AppointmentMenu.sort_order",
        cascade="all, delete-orphan",
    )


class AppointmentMenu(Base):
    """Menu snapshot captured when the appointment was written"""
    __tablename__ = "appointment_menus"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    menu_id = Column(Integer, ForeignKey("treatment_menus.id"), nullable=True)
    menu_name_snapshot = Column(String(100), nullable=False)
    price_snapshot = Column(Integer, nullable=True)
    duration_minutes_snapshot = Column(Integer, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    appointment = relationship("Appointment", back_populates="menus")


class SalonLineConfig(Base):
    """Per-salon LINE channel connection"""
    __tablename__ = "salon_line_configs"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, unique=True)
    channel_id = Column(String(100), nullable=False)
    channel_secret_encrypted = Column(Text, nullable=False)
    channel_access_token_encrypted = Column(Text, nullable=False)
    webhook_token = Column(String(64), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    reminder_enabled = Column(Boolean, nullable=False, default=True)
    confirmation_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon", back_populates="line_config")


class CustomerLineLink(Base):
    """LINE user known to a salon, optionally linked to a customer"""
    __tablename__ = "customer_line_links"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    line_user_id = Column(String(64), nullable=False)
    display_name = Column(String(100), nullable=True)
    picture_url = Column(String(500), nullable=True)
    is_following = Column(Boolean, nullable=False, default=True)
    linked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('salon_id', 'line_user_id', name='unique_salon_line_user'),
    )


class LineMessageLog(Base):
    """One row per dispatch attempt, never updated"""
    __tablename__ = "line_message_logs"

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(Integer, ForeignKey("salons.id"), nullable=False, index=True)
    customer_line_link_id = Column(Integer, ForeignKey("customer_line_links.id", ondelete="SET NULL"), nullable=True)
    message_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    related_appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
