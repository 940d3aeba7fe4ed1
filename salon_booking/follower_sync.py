"""
Import existing LINE followers as channel links

Profile lookups run in small concurrent batches to stay under the LINE
rate limits; a failed lookup only drops that one follower.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import Session

from . import config, models
from .auth import OwnerContext
from .crypto import CredentialVault
from .exceptions import ExternalServiceError, ValidationError
from .line_service import LineApiError, LineMessagingClient

logger = logging.getLogger(__name__)


async def sync_followers(
    db: Session,
    ctx: OwnerContext,
    client: LineMessagingClient,
    vault: CredentialVault,
    batch_size: Optional[int] = None,
) -> dict:
    batch_size = batch_size or config.FOLLOWER_SYNC_BATCH_SIZE

    line_config = db.query(models.SalonLineConfig).filter(
        models.SalonLineConfig.salon_id == ctx.salon_id
    ).first()
    if not line_config or not line_config.is_active:
        raise ValidationError("LINE connection is not active")

    access_token = vault.decrypt(line_config.channel_access_token_encrypted)

    try:
        follower_ids = await client.get_follower_ids(access_token)
    except LineApiError as e:
        logger.error(f"❌ Follower id lookup failed: {e.message}")
        # Free (unverified) official accounts cannot use the follower ids API
        if e.upstream_status == 403:
            raise ExternalServiceError(
                "Follower sync requires a verified LINE Official Account. "
                "Apply for verification in LINE Official Account Manager."
            )
        raise

    if not follower_ids:
        return {"added": 0, "total": 0}

    existing_ids = {
        row.line_user_id
        for row in db.query(models.CustomerLineLink.line_user_id).filter(
            models.CustomerLineLink.salon_id == ctx.salon_id
        ).all()
    }
    new_ids = [user_id for user_id in dict.fromkeys(follower_ids) if user_id not in existing_ids]

    added = 0
    for i in range(0, len(new_ids), batch_size):
        batch = new_ids[i:i + batch_size]
        results = await asyncio.gather(
            *(client.get_profile(access_token, user_id) for user_id in batch),
            return_exceptions=True,
        )

        for user_id, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.warning(f"⚠️ Profile lookup failed for a follower: {result}")
                continue
            db.add(models.CustomerLineLink(
                salon_id=ctx.salon_id,
                line_user_id=user_id,
                display_name=result.get("displayName"),
                picture_url=result.get("pictureUrl"),
                is_following=True,
            ))
            added += 1
        db.commit()

    logger.info(f"✅ Follower sync for salon {ctx.salon_id}: added={added} total={len(follower_ids)}")
    return {"added": added, "total": len(follower_ids)}
