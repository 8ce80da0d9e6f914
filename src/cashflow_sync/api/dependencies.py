import secrets
from typing import Annotated

from fastapi import Header, HTTPException, Request

from cashflow_sync.bot.dispatcher import CommandDispatcher
from cashflow_sync.core import settings
from cashflow_sync.integration.telegram import TelegramClient
from cashflow_sync.services.aggregation import AggregationEngine


def get_dispatcher(request: Request) -> CommandDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if not dispatcher:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return dispatcher


def get_telegram(request: Request) -> TelegramClient:
    telegram = getattr(request.app.state, "telegram", None)
    if not telegram:
        raise HTTPException(status_code=500, detail="Telegram not configured")
    return telegram


def get_aggregation(request: Request) -> AggregationEngine:
    aggregation = getattr(request.app.state, "aggregation", None)
    if not aggregation:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return aggregation


def require_api_key(x_api_key: Annotated[str | None, Header()] = None) -> None:
    """Account data is only served to callers holding the configured API_KEY."""
    expected = settings.API_KEY
    if not expected:
        raise HTTPException(status_code=503, detail="API key not configured")
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
