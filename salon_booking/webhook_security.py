"""
LINE webhook signature verification

The channel is located by the opaque token in the webhook path. Unknown
tokens are rejected before any decryption or signature work happens.
"""
import base64
import hashlib
import hmac
import logging
from typing import Optional

from sqlalchemy.orm import Session

from . import models
from .crypto import CredentialVault
from .exceptions import NotFoundError, SignatureError

logger = logging.getLogger(__name__)


def compute_signature(channel_secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 of the raw body, as sent in X-Line-Signature"""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(channel_secret: str, body: bytes, signature: Optional[str]) -> bool:
    if not signature:
        return False
    expected = compute_signature(channel_secret, body).encode("utf-8")
    actual = signature.encode("utf-8")
    if len(expected) != len(actual):
        return False
    return hmac.compare_digest(expected, actual)


def authenticate_webhook(
    db: Session,
    vault: CredentialVault,
    webhook_token: str,
    body: bytes,
    signature: Optional[str],
) -> Optional[models.SalonLineConfig]:
    """Return the channel config for a verified request.

    Returns None for an inactive channel, which the caller acknowledges
    without processing anything.
    """
    line_config = db.query(models.SalonLineConfig).filter(
        models.SalonLineConfig.webhook_token == webhook_token
    ).first()
    if not line_config:
        logger.warning("🚫 Webhook for unknown path token")
        raise NotFoundError("Unknown webhook URL")

    if not line_config.is_active:
        logger.info(f"Webhook for inactive channel, salon={line_config.salon_id}")
        return None

    channel_secret = vault.decrypt(line_config.channel_secret_encrypted)
    if not verify_signature(channel_secret, body, signature):
        logger.warning(f"🚫 Webhook signature mismatch, salon={line_config.salon_id}")
        raise SignatureError("Signature verification failed")

    return line_config
