"""
Telegram push transport

Same send_push contract as the LINE client, so a salon channel can be
backed by a Telegram bot: the stored access token is the bot token and the
recipient id is the chat id.
"""
import logging
from typing import List

from telegram import Bot
from telegram.error import TelegramError

from .exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class TelegramTransport:
    """Sends LINE-shaped text messages through the Telegram Bot API"""

    async def send_push(self, access_token: str, recipient_id: str, messages: List[dict]) -> dict:
        sent = []
        try:
            async with Bot(token=access_token) as bot:
                for message in messages:
                    result = await bot.send_message(chat_id=recipient_id, text=message["text"])
                    sent.append({"id": str(result.message_id)})
        except TelegramError as e:
            logger.error(f"❌ Telegram send to {recipient_id} failed: {e}")
            raise ExternalServiceError(f"Telegram send failed: {e}")

        logger.info(f"✅ Telegram message sent to chat {recipient_id}")
        return {"sentMessages": sent}


telegram_transport = TelegramTransport()
