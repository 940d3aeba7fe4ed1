from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session

from ..crypto import CredentialVault, get_vault
from ..database import get_db, get_session_factory
from ..line_events import parse_webhook_body, process_webhook_events
from ..line_service import LineMessagingClient, get_line_client
from ..webhook_security import authenticate_webhook


router = APIRouter(prefix="/api/line/webhook", tags=["Webhooks"])


@router.post("/{webhook_token}")
async def line_webhook(
    webhook_token: str,
    request: Request,
    background_tasks: BackgroundTasks,
    x_line_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    vault: CredentialVault = Depends(get_vault),
    client: LineMessagingClient = Depends(get_line_client),
    session_factory=Depends(get_session_factory),
):
    """LINE webhook intake; must answer within a second, events run afterwards"""
    body = await request.body()

    line_config = authenticate_webhook(db, vault, webhook_token, body, x_line_signature)
    if line_config is None:
        return {"ok": True}

    events = parse_webhook_body(body)
    if events:
        background_tasks.add_task(
            process_webhook_events,
            session_factory,
            client,
            vault,
            line_config.salon_id,
            line_config.channel_access_token_encrypted,
            events,
        )
    return {"ok": True}
