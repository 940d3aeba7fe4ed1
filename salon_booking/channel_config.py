"""
LINE channel settings and manual customer linking
"""
import logging
import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .auth import OwnerContext
from .crypto import CredentialVault
from .exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TOGGLE_FIELDS = ("is_active", "reminder_enabled", "confirmation_enabled")


def get_channel_config(db: Session, ctx: OwnerContext) -> Optional[models.SalonLineConfig]:
    return db.query(models.SalonLineConfig).filter(models.SalonLineConfig.salon_id == ctx.salon_id).first()


def save_channel_config(
    db: Session,
    ctx: OwnerContext,
    vault: CredentialVault,
    channel_id: str,
    channel_secret: str,
    channel_access_token: str,
) -> models.SalonLineConfig:
    """Create or replace the salon's channel credentials"""
    if not channel_id or not channel_secret or not channel_access_token:
        raise ValidationError("Channel ID, channel secret and access token are all required")

    line_config = get_channel_config(db, ctx)
    if line_config is None:
        line_config = models.SalonLineConfig(
            salon_id=ctx.salon_id,
            webhook_token=secrets.token_urlsafe(32),
            is_active=True,
            reminder_enabled=True,
            confirmation_enabled=True,
        )
        db.add(line_config)

    line_config.channel_id = channel_id
    line_config.channel_secret_encrypted = vault.encrypt(channel_secret)
    line_config.channel_access_token_encrypted = vault.encrypt(channel_access_token)
    db.commit()
    db.refresh(line_config)

    logger.info(f"✅ LINE channel saved for salon {ctx.salon_id}")
    return line_config


def update_channel_toggles(db: Session, ctx: OwnerContext, **toggles: Optional[bool]) -> models.SalonLineConfig:
    updates = {key: value for key, value in toggles.items() if key in TOGGLE_FIELDS and isinstance(value, bool)}
    if not updates:
        raise ValidationError("Nothing to update")

    line_config = get_channel_config(db, ctx)
    if line_config is None:
        raise NotFoundError("LINE channel is not configured")

    for key, value in updates.items():
        setattr(line_config, key, value)
    db.commit()
    db.refresh(line_config)
    return line_config


def delete_channel_config(db: Session, ctx: OwnerContext) -> None:
    line_config = get_channel_config(db, ctx)
    if line_config is not None:
        db.delete(line_config)
        db.commit()
        logger.info(f"LINE channel disconnected for salon {ctx.salon_id}")


def list_channel_links(db: Session, ctx: OwnerContext) -> List[models.CustomerLineLink]:
    return db.query(models.CustomerLineLink).filter(
        models.CustomerLineLink.salon_id == ctx.salon_id
    ).order_by(models.CustomerLineLink.id).all()


def link_customer(db: Session, ctx: OwnerContext, link_id: int, customer_id: Optional[int]) -> models.CustomerLineLink:
    """Attach a LINE user to a customer, or clear the link with customer_id=None"""
    link = db.query(models.CustomerLineLink).filter(
        models.CustomerLineLink.id == link_id,
        models.CustomerLineLink.salon_id == ctx.salon_id,
    ).first()
    if not link:
        raise NotFoundError("LINE link not found")

    if customer_id is not None:
        customer = db.query(models.Customer).filter(
            models.Customer.id == customer_id,
            models.Customer.salon_id == ctx.salon_id,
        ).first()
        if not customer:
            raise NotFoundError("Customer not found")

    link.customer_id = customer_id
    link.linked_at = datetime.utcnow() if customer_id is not None else None
    db.commit()
    db.refresh(link)
    return link
