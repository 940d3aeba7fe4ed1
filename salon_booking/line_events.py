"""
LINE webhook events

Payloads are parsed into a closed set of event kinds. Anything we do not
handle becomes UnsupportedEvent and is ignored.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from . import models
from .crypto import CredentialVault
from .exceptions import ExternalServiceError
from .line_service import LineMessagingClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FollowEvent:
    user_id: str


@dataclass(frozen=True)
class UnfollowEvent:
    user_id: str


@dataclass(frozen=True)
class UnsupportedEvent:
    event_type: str
    raw: dict = field(default_factory=dict, compare=False)


LineEvent = Union[FollowEvent, UnfollowEvent, UnsupportedEvent]

EVENT_KINDS = {
    "follow": FollowEvent,
    "unfollow": UnfollowEvent,
}


def parse_event(raw) -> LineEvent:
    if not isinstance(raw, dict):
        return UnsupportedEvent(event_type="invalid")

    event_type = raw.get("type")
    if not isinstance(event_type, str):
        return UnsupportedEvent(event_type="invalid", raw=raw)

    source = raw.get("source") or {}
    if not isinstance(source, dict):
        return UnsupportedEvent(event_type=event_type, raw=raw)
    user_id = source.get("userId")
    kind = EVENT_KINDS.get(event_type)
    # Group and room sources are not tied to a single customer
    if kind is None or source.get("type") != "user" or not user_id:
        return UnsupportedEvent(event_type=event_type, raw=raw)
    return kind(user_id=user_id)


def parse_webhook_body(body: bytes) -> List[LineEvent]:
    """Decode a signed webhook body; malformed bodies yield no events"""
    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        logger.warning("⚠️ Webhook body is not valid JSON")
        return []
    if not isinstance(payload, dict):
        return []
    events = payload.get("events") or []
    if not isinstance(events, list):
        return []
    return [parse_event(raw) for raw in events]


async def _handle_follow(
    db: Session,
    client: LineMessagingClient,
    salon_id: int,
    access_token: str,
    event: FollowEvent,
) -> None:
    display_name: Optional[str] = None
    picture_url: Optional[str] = None
    try:
        profile = await client.get_profile(access_token, event.user_id)
        display_name = profile.get("displayName")
        picture_url = profile.get("pictureUrl")
    except ExternalServiceError as e:
        logger.error(f"❌ LINE profile lookup failed: {e}")

    link = db.query(models.CustomerLineLink).filter(
        models.CustomerLineLink.salon_id == salon_id,
        models.CustomerLineLink.line_user_id == event.user_id,
    ).first()
    if link:
        link.is_following = True
        if display_name is not None:
            link.display_name = display_name
        if picture_url is not None:
            link.picture_url = picture_url
    else:
        db.add(models.CustomerLineLink(
            salon_id=salon_id,
            line_user_id=event.user_id,
            display_name=display_name,
            picture_url=picture_url,
            is_following=True,
        ))
    db.commit()


def _handle_unfollow(db: Session, salon_id: int, event: UnfollowEvent) -> None:
    db.query(models.CustomerLineLink).filter(
        models.CustomerLineLink.salon_id == salon_id,
        models.CustomerLineLink.line_user_id == event.user_id,
    ).update({"is_following": False})
    db.commit()


async def handle_line_events(
    db: Session,
    client: LineMessagingClient,
    vault: CredentialVault,
    salon_id: int,
    access_token_encrypted: str,
    events: List[LineEvent],
) -> None:
    access_token = vault.decrypt(access_token_encrypted)

    for event in events:
        if isinstance(event, FollowEvent):
            await _handle_follow(db, client, salon_id, access_token, event)
        elif isinstance(event, UnfollowEvent):
            _handle_unfollow(db, salon_id, event)
        else:
            logger.debug(f"Ignoring LINE event: {event.event_type}")


async def process_webhook_events(
    session_factory: Callable[[], Session],
    client: LineMessagingClient,
    vault: CredentialVault,
    salon_id: int,
    access_token_encrypted: str,
    events: List[LineEvent],
) -> None:
    """Background task run after the webhook has been acknowledged.

    Uses its own session; failures can only be seen in the logs.
    """
    db = session_factory()
    try:
        await handle_line_events(db, client, vault, salon_id, access_token_encrypted, events)
    except Exception:
        logger.exception(f"❌ LINE webhook event processing failed (salon: {salon_id})")
        db.rollback()
    finally:
        db.close()
