import asyncio
import os

import httpx

from cashflow_sync.logger import get_logger

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"


class TelegramClient:
    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.token = token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.api_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient(timeout=self.timeout)
                self._client = client
            return client

    async def send_message(self, chat_id: int, text: str, parse_mode: str = "Markdown") -> bool:
        if not self.token:
            logger.error("[TELEGRAM] Bot token missing; cannot reply to chat %s.", chat_id)
            return False

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.api_url}/bot{self.token}/sendMessage",
                json={
                    "chat_id": chat_id,
                    "text": text,
                    "parse_mode": parse_mode,
                },
            )
            response.raise_for_status()
            return True
        except httpx.HTTPStatusError as exc:
            logger.error(
                "[TELEGRAM] sendMessage to chat %s returned %s: %s",
                chat_id,
                exc.response.status_code,
                exc.response.text,
            )
            return False
        except httpx.HTTPError as exc:
            logger.error("[TELEGRAM] Error sending message to chat %s: %s", chat_id, exc)
            return False
