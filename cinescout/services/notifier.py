"""Outbound Telegram notifications for new message board posts."""
from __future__ import annotations

import httpx
from loguru import logger

from cinescout.config import settings


async def send_telegram_notification(text: str) -> bool:
    """Send ``text`` to the configured chat. Failures are logged, never raised."""
    if not settings.telegram_bot_token or not settings.telegram_chat_id:
        logger.warning(
            "Telegram notification skipped: TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID not set"
        )
        return False

    url = f"{settings.telegram_api_base}/bot{settings.telegram_bot_token}/sendMessage"
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                url,
                json={"chat_id": settings.telegram_chat_id, "text": text},
            )
    except httpx.HTTPError as e:
        logger.error(f"Failed to send Telegram notification: {e}")
        return False

    if response.is_error:
        logger.error(f"Telegram API error: {response.text}")
        return False
    return True
