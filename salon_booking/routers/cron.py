from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import verify_cron_secret
from ..crypto import CredentialVault, get_vault
from ..database import get_db
from ..notifications import PushTransport, get_transport
from ..reminders import run_daily_reminders

router = APIRouter(prefix="/api/cron", tags=["Cron"])


@router.post(
    "/line-reminders",
    response_model=schemas.ReminderRunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def line_reminders(
    db: Session = Depends(get_db),
    transport: PushTransport = Depends(get_transport),
    vault: CredentialVault = Depends(get_vault),
):
    """Day-before reminders (scheduled daily at 12:00 UTC / 21:00 JST)"""
    return await run_daily_reminders(db, transport, vault)
