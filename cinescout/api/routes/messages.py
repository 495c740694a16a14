from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request, Response

from cinescout.models.schemas import MessageEntry
from cinescout.services import logger as log_service
from cinescout.services.message_store import get_message_store, new_entry, validate_message_text
from cinescout.services.notifier import send_telegram_notification

router = APIRouter(prefix="/api", tags=["messages"])


async def _json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _telegram_sender(sender: Any) -> str:
    if not isinstance(sender, dict):
        return ""
    if sender.get("username"):
        return f"@{sender['username']}"
    return " ".join(
        str(part) for part in (sender.get("first_name"), sender.get("last_name")) if part
    )


@router.get("/messages", response_model=list[MessageEntry], response_model_exclude_none=True)
async def list_messages():
    return await get_message_store().list_messages()


@router.post(
    "/messages",
    status_code=201,
    response_model=MessageEntry,
    response_model_exclude_none=True,
)
async def create_message(request: Request, background_tasks: BackgroundTasks):
    body = await _json_object(request)
    text = validate_message_text(body.get("message"))

    entry = await get_message_store().append(new_entry(text))
    background_tasks.add_task(
        send_telegram_notification, f"New message on Message Board:\n\n{text}"
    )
    return entry


@router.post("/telegram-webhook")
async def telegram_webhook(request: Request):
    """Store text messages sent to the bot; Telegram only needs a 200 back."""
    update = await _json_object(request)
    message = update.get("message")
    text = message.get("text") if isinstance(message, dict) else None
    if not text or not isinstance(text, str):
        return Response(status_code=200)

    entry = new_entry(text, source="telegram", sender=_telegram_sender(message.get("from")))
    await get_message_store().append(entry)
    log_service.log_event(
        event_type="telegram_message_stored",
        message="Stored message from Telegram",
        id=entry["id"],
    )
    return Response(status_code=200)
