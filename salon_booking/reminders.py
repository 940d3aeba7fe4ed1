"""
Daily reminder batch for tomorrow's appointments

Triggered once a day by an external scheduler. Each salon and each
appointment is processed inside its own error boundary so one failure
never stops the rest of the run.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from . import models
from .business_hours import today_in_jst
from .crypto import CredentialVault
from .notifications import PushTransport, appointment_info, dispatch, find_customer_link

logger = logging.getLogger(__name__)


def tomorrow_in_jst(now: Optional[datetime] = None) -> str:
    """Tomorrow's civil date in UTC+9 as "YYYY-MM-DD", whatever the host timezone"""
    return (today_in_jst(now) + timedelta(days=1)).isoformat()


async def _remind_salon(
    db: Session,
    transport: PushTransport,
    vault: CredentialVault,
    line_config: models.SalonLineConfig,
    target_date: str,
    totals: dict,
) -> None:
    salon = db.query(models.Salon).filter(models.Salon.id == line_config.salon_id).first()
    if not salon:
        return

    appointments = db.query(models.Appointment).filter(
        models.Appointment.salon_id == salon.id,
        models.Appointment.appointment_date == datetime.strptime(target_date, "%Y-%m-%d").date(),
        models.Appointment.status == "scheduled",
    ).order_by(models.Appointment.start_time).all()

    for appointment in appointments:
        try:
            customer = db.query(models.Customer).filter(
                models.Customer.id == appointment.customer_id,
                models.Customer.salon_id == salon.id,
            ).first()
            if not customer:
                continue

            link = find_customer_link(db, salon.id, customer.id)
            if not link or not link.is_following:
                continue

            info = appointment_info(appointment, customer, salon.name)
            result = await dispatch(db, transport, vault, "reminder", line_config, link, info, appointment.id)
        except Exception:
            logger.exception(f"❌ Reminder failed (salon: {salon.id}, appointment: {appointment.id})")
            db.rollback()
            totals["failed"] += 1
            continue

        if result.status == "sent":
            totals["sent"] += 1
        elif result.status == "failed":
            totals["failed"] += 1


async def run_daily_reminders(
    db: Session,
    transport: PushTransport,
    vault: CredentialVault,
    now: Optional[datetime] = None,
) -> dict:
    """Send reminders for every salon with reminders on; returns {sent, failed, date}"""
    target_date = tomorrow_in_jst(now)
    totals = {"sent": 0, "failed": 0}

    configs = db.query(models.SalonLineConfig).filter(
        models.SalonLineConfig.is_active.is_(True),
        models.SalonLineConfig.reminder_enabled.is_(True),
    ).order_by(models.SalonLineConfig.salon_id).all()

    logger.info(f"📅 Reminder run for {target_date}: {len(configs)} salon(s)")

    for line_config in configs:
        salon_id = line_config.salon_id
        try:
            await _remind_salon(db, transport, vault, line_config, target_date, totals)
        except Exception:
            logger.exception(f"❌ Reminder run failed for salon {salon_id}")
            db.rollback()
            totals["failed"] += 1

    logger.info(f"Reminder run done: sent={totals['sent']} failed={totals['failed']}")
    return {"sent": totals["sent"], "failed": totals["failed"], "date": target_date}
