from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from cashflow_sync.api.dependencies import get_dispatcher, get_telegram
from cashflow_sync.api.schemas import TelegramUpdate
from cashflow_sync.bot.dispatcher import CommandDispatcher
from cashflow_sync.integration.telegram import TelegramClient
from cashflow_sync.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/telegram-bot")
async def telegram_webhook(
    request: Request,
    dispatcher: Annotated[CommandDispatcher, Depends(get_dispatcher)],
    telegram: Annotated[TelegramClient, Depends(get_telegram)],
) -> dict[str, str]:
    try:
        payload = await request.json()
    except Exception as exc:
        logger.warning("[WEBHOOK] Received invalid JSON payload.")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc

    try:
        update = TelegramUpdate.model_validate(payload)
    except ValidationError:
        logger.info("[WEBHOOK] Ignoring update with unexpected shape.")
        return {"status": "ignored", "reason": "unsupported update"}

    message = update.message
    if message is None or not message.text:
        logger.debug("[WEBHOOK] Ignoring update %s without text.", update.update_id)
        return {"status": "ignored", "reason": "no text message"}

    try:
        reply = await dispatcher.dispatch(message.identity, message.text)
    except Exception as exc:
        logger.exception("[WEBHOOK] Failed to process update %s.", update.update_id)
        raise HTTPException(status_code=500, detail="Error") from exc

    if reply is None:
        return {"status": "ignored", "reason": "empty message"}

    await telegram.send_message(message.chat.id, reply)
    return {"status": "ok"}
