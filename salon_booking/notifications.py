"""
Outbound LINE notifications

Every attempt that passes the pre-conditions makes exactly one transport
call and writes exactly one LineMessageLog row. Transport failures are
recorded, never raised to the caller.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from sqlalchemy.orm import Session

from . import config, models
from .appointments import get_appointment
from .auth import OwnerContext
from .crypto import CredentialVault
from .exceptions import NotFoundError, ValidationError
from .line_service import get_line_client
from .messages import (
    AppointmentInfo, build_confirmation_message, build_reminder_message, build_test_message,
)
from .telegram_service import telegram_transport

logger = logging.getLogger(__name__)

MESSAGE_BUILDERS = {
    "confirmation": build_confirmation_message,
    "reminder": build_reminder_message,
}

# Which config toggle gates which trigger
TOGGLES = {
    "confirmation": "confirmation_enabled",
    "reminder": "reminder_enabled",
}


class PushTransport(Protocol):
    async def send_push(self, access_token: str, recipient_id: str, messages: List[dict]) -> dict:
        ...


@dataclass
class DispatchResult:
    status: str  # sent | failed | skipped
    reason: Optional[str] = None
    error: Optional[str] = None
    log_id: Optional[int] = None


def get_transport() -> PushTransport:
    if config.MESSAGING_TRANSPORT == "telegram":
        return telegram_transport
    return get_line_client()


def skip_reason(
    trigger: str,
    line_config: Optional[models.SalonLineConfig],
    link: Optional[models.CustomerLineLink],
) -> Optional[str]:
    """Why a dispatch should silently not happen, or None to go ahead"""
    if line_config is None or not line_config.is_active:
        return "channel inactive"
    toggle = TOGGLES.get(trigger)
    if toggle and not getattr(line_config, toggle):
        return f"{trigger} disabled"
    if link is None:
        return "customer not linked to LINE"
    if not link.is_following:
        return "LINE user is not following"
    return None


def appointment_info(appointment: models.Appointment, customer: models.Customer, salon_name: str) -> AppointmentInfo:
    return AppointmentInfo(
        customer_name=customer.display_name,
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        salon_name=salon_name,
        menu_names=[menu.menu_name_snapshot for menu in appointment.menus],
    )


async def _send_and_log(
    db: Session,
    transport: PushTransport,
    vault: CredentialVault,
    line_config: models.SalonLineConfig,
    message_type: str,
    recipient_id: str,
    build_message: Callable[[], dict],
    link_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
) -> DispatchResult:
    log = models.LineMessageLog(
        salon_id=line_config.salon_id,
        customer_line_link_id=link_id,
        message_type=message_type,
        related_appointment_id=appointment_id,
    )
    try:
        access_token = vault.decrypt(line_config.channel_access_token_encrypted)
        await transport.send_push(access_token, recipient_id, [build_message()])
    except Exception as e:
        error_message = getattr(e, "message", None) or str(e) or "Send failed"
        logger.error(f"❌ LINE {message_type} failed (salon: {line_config.salon_id}): {error_message}")
        log.status = "failed"
        log.error_message = error_message
        result = DispatchResult(status="failed", error=error_message)
    else:
        log.status = "sent"
        log.sent_at = datetime.utcnow()
        logger.info(f"✅ LINE {message_type} sent (salon: {line_config.salon_id})")
        result = DispatchResult(status="sent")

    db.add(log)
    db.commit()
    result.log_id = log.id
    return result


async def dispatch(
    db: Session,
    transport: PushTransport,
    vault: CredentialVault,
    trigger: str,
    line_config: Optional[models.SalonLineConfig],
    link: Optional[models.CustomerLineLink],
    info: AppointmentInfo,
    appointment_id: Optional[int] = None,
) -> DispatchResult:
    """Send one confirmation or reminder. Not idempotent: each call sends and logs."""
    if trigger not in MESSAGE_BUILDERS:
        raise ValueError(f"Unknown notification trigger: {trigger}")

    reason = skip_reason(trigger, line_config, link)
    if reason:
        logger.debug(f"LINE {trigger} skipped: {reason}")
        return DispatchResult(status="skipped", reason=reason)

    return await _send_and_log(
        db, transport, vault, line_config,
        message_type=trigger,
        recipient_id=link.line_user_id,
        build_message=lambda: MESSAGE_BUILDERS[trigger](info),
        link_id=link.id,
        appointment_id=appointment_id,
    )


def _salon_line_config(db: Session, salon_id: int) -> Optional[models.SalonLineConfig]:
    return db.query(models.SalonLineConfig).filter(models.SalonLineConfig.salon_id == salon_id).first()


def find_customer_link(db: Session, salon_id: int, customer_id: int) -> Optional[models.CustomerLineLink]:
    return db.query(models.CustomerLineLink).filter(
        models.CustomerLineLink.salon_id == salon_id,
        models.CustomerLineLink.customer_id == customer_id,
    ).order_by(models.CustomerLineLink.id).first()


async def notify_appointment_confirmation(
    db: Session,
    ctx: OwnerContext,
    transport: PushTransport,
    vault: CredentialVault,
    appointment_id: int,
) -> DispatchResult:
    """Booking confirmation for one of the owner's appointments"""
    appointment = get_appointment(db, ctx, appointment_id)
    customer = db.query(models.Customer).filter(
        models.Customer.id == appointment.customer_id,
        models.Customer.salon_id == ctx.salon_id,
    ).first()
    if not customer:
        raise NotFoundError("Customer not found")

    line_config = _salon_line_config(db, ctx.salon_id)
    link = find_customer_link(db, ctx.salon_id, customer.id)
    info = appointment_info(appointment, customer, ctx.salon_name)
    return await dispatch(db, transport, vault, "confirmation", line_config, link, info, appointment.id)


async def send_test_message(
    db: Session,
    ctx: OwnerContext,
    transport: PushTransport,
    vault: CredentialVault,
    line_user_id: str,
) -> DispatchResult:
    if not line_user_id:
        raise ValidationError("LINE user id is required")

    line_config = _salon_line_config(db, ctx.salon_id)
    if line_config is None or not line_config.is_active:
        raise ValidationError("LINE connection is not configured")

    return await _send_and_log(
        db, transport, vault, line_config,
        message_type="test",
        recipient_id=line_user_id,
        build_message=lambda: build_test_message(ctx.salon_name),
    )
