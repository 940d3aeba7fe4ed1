from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import channel_config, schemas
from ..auth import OwnerContext, get_owner_context
from ..crypto import CredentialVault, get_vault
from ..database import get_db
from ..follower_sync import sync_followers
from ..line_service import LineMessagingClient, get_line_client
from ..notifications import PushTransport, get_transport, notify_appointment_confirmation, send_test_message

router = APIRouter(prefix="/api/line", tags=["LINE"])


def _dispatch_response(result) -> schemas.DispatchResponse:
    return schemas.DispatchResponse(status=result.status, reason=result.reason, error=result.error)


@router.get("/config", response_model=Optional[schemas.LineConfigResponse])
def get_config(
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    return channel_config.get_channel_config(db, ctx)


@router.post("/config", response_model=schemas.LineConfigResponse)
def save_config(
    data: schemas.LineConfigSaveRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
    vault: CredentialVault = Depends(get_vault),
):
    """Connect (or reconnect) the salon's LINE channel"""
    return channel_config.save_channel_config(
        db, ctx, vault, data.channel_id, data.channel_secret, data.channel_access_token
    )


@router.patch("/config", response_model=schemas.LineConfigResponse)
def update_config(
    data: schemas.LineConfigToggleRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Turn the channel, reminders or confirmations on/off"""
    return channel_config.update_channel_toggles(
        db, ctx,
        is_active=data.is_active,
        reminder_enabled=data.reminder_enabled,
        confirmation_enabled=data.confirmation_enabled,
    )


@router.delete("/config")
def delete_config(
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Disconnect LINE"""
    channel_config.delete_channel_config(db, ctx)
    return {"success": True}


@router.get("/links", response_model=List[schemas.LineLinkResponse])
def list_links(
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    return channel_config.list_channel_links(db, ctx)


@router.post("/link", response_model=schemas.LineLinkResponse)
def link_customer(
    data: schemas.LineLinkRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
):
    """Link a LINE user to a customer (customer_id=null unlinks)"""
    return channel_config.link_customer(db, ctx, data.link_id, data.customer_id)


@router.post("/notify-appointment", response_model=schemas.DispatchResponse)
async def notify_appointment(
    data: schemas.NotifyAppointmentRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
    transport: PushTransport = Depends(get_transport),
    vault: CredentialVault = Depends(get_vault),
):
    """Send the booking confirmation for an appointment"""
    result = await notify_appointment_confirmation(db, ctx, transport, vault, data.appointment_id)
    return _dispatch_response(result)


@router.post("/test", response_model=schemas.DispatchResponse)
async def test_message(
    data: schemas.TestMessageRequest,
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
    transport: PushTransport = Depends(get_transport),
    vault: CredentialVault = Depends(get_vault),
):
    """Send a test message to a LINE user"""
    result = await send_test_message(db, ctx, transport, vault, data.line_user_id)
    return _dispatch_response(result)


@router.post("/sync-followers", response_model=schemas.FollowerSyncResponse)
async def sync_line_followers(
    db: Session = Depends(get_db),
    ctx: OwnerContext = Depends(get_owner_context),
    client: LineMessagingClient = Depends(get_line_client),
    vault: CredentialVault = Depends(get_vault),
):
    """Import users who already follow the salon's LINE account"""
    return await sync_followers(db, ctx, client, vault)
