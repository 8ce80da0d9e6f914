import asyncio
import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from cashflow_sync.domain.errors import PersistenceError
from cashflow_sync.logger import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION_CODE = "23505"


class StoreError(PersistenceError):
    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class UniqueViolationError(StoreError):
    pass


@dataclass(frozen=True)
class Condition:
    column: str
    op: str
    value: Any

    def as_param(self) -> tuple[str, str]:
        return self.column, f"{self.op}.{_encode_value(self.value)}"


def _encode_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def eq(column: str, value: Any) -> Condition:
    if value is None:
        return Condition(column, "is", None)
    return Condition(column, "eq", value)


def gte(column: str, value: Any) -> Condition:
    return Condition(column, "gte", value)


def lte(column: str, value: Any) -> Condition:
    return Condition(column, "lte", value)


class SupabaseClient:
    """Thin PostgREST client for the tables the bot reads and appends to."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        base_url = base_url or os.getenv("SUPABASE_URL") or ""
        self.base_url = base_url.rstrip("/") or None
        self.service_key = service_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.timeout = timeout
        self.headers = {
            "apikey": self.service_key or "",
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)

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

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        if not self.configured:
            raise StoreError("Store credentials missing")

        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._table_url(table),
                headers=headers,
                params=params,
                json=json,
            )
        except httpx.HTTPError as exc:
            logger.error("[STORE] %s %s failed: %s", method, table, exc)
            raise StoreError(f"{method} {table} failed: {exc}") from exc

        if response.is_error:
            raise self._error_from_response(method, table, response)

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_from_response(method: str, table: str, response: httpx.Response) -> StoreError:
        code: str | None = None
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or message

        logger.error(
            "[STORE] %s %s returned %s (code=%s): %s",
            method,
            table,
            response.status_code,
            code,
            message,
        )
        if code == UNIQUE_VIOLATION_CODE or response.status_code == 409:
            return UniqueViolationError(message, status_code=response.status_code, code=code)
        return StoreError(message, status_code=response.status_code, code=code)

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        where: Sequence[Condition] = (),
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = [("select", columns)]
        params.extend(condition.as_param() for condition in where)
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        rows = await self._request("GET", table, params=params)
        logger.debug("[STORE] Selected %d row(s) from %s.", len(rows or []), table)
        return rows or []

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = await self._request(
            "POST",
            table,
            json=row,
            prefer="return=representation",
        )
        return _first_row(rows, row)

    async def upsert(self, table: str, row: dict[str, Any], *, on_conflict: str) -> dict[str, Any]:
        rows = await self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            json=row,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return _first_row(rows, row)


def _first_row(rows: Any, fallback: dict[str, Any]) -> dict[str, Any]:
    if isinstance(rows, list) and rows:
        return rows[0]
    if isinstance(rows, dict):
        return rows
    return dict(fallback)
