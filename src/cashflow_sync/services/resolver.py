from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from rapidfuzz import fuzz, process, utils

from cashflow_sync.domain.errors import NotFoundError, NotFoundKind
from cashflow_sync.integration.supabase import SupabaseClient, eq
from cashflow_sync.logger import get_logger
from cashflow_sync.models import Card, Category, CategoryType

logger = get_logger(__name__)

CATEGORIES_TABLE = "categories"
CARDS_TABLE = "cards"

CATEGORY_COLUMNS = "id,account_id,name,category_type,color,is_active,parent_id,created_at"
CARD_COLUMNS = "id,account_id,name,is_active,created_at"

SUGGESTION_MIN_SCORE = 80.0

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _creation_key(row: dict[str, Any]) -> tuple[datetime, str]:
    raw = row.get("created_at")
    created = _EPOCH
    if isinstance(raw, datetime):
        created = raw
    elif isinstance(raw, str) and raw:
        try:
            created = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created, str(row.get("id", ""))


def earliest_created(rows: list[dict[str, Any]]) -> dict[str, Any]:
    """Duplicate names resolve to the oldest row, then the lowest id."""
    return min(rows, key=_creation_key)


def suggest_name(name: str, candidates: Iterable[str]) -> str | None:
    match = process.extractOne(
        name,
        list(candidates),
        scorer=fuzz.WRatio,
        processor=utils.default_process,
        score_cutoff=SUGGESTION_MIN_SCORE,
    )
    return match[0] if match else None


class NameResolver:
    def __init__(self, store: SupabaseClient) -> None:
        self.store = store

    async def _active_categories(
        self, account_id: str, category_type: CategoryType, name: str | None = None
    ) -> list[dict[str, Any]]:
        where = [
            eq("account_id", account_id),
            eq("category_type", category_type.value),
            eq("is_active", True),
        ]
        if name is not None:
            where.append(eq("name", name))
        return await self.store.select(CATEGORIES_TABLE, columns=CATEGORY_COLUMNS, where=where)

    async def _active_cards(self, account_id: str, name: str | None = None) -> list[dict[str, Any]]:
        where = [eq("account_id", account_id), eq("is_active", True)]
        if name is not None:
            where.append(eq("name", name))
        return await self.store.select(CARDS_TABLE, columns=CARD_COLUMNS, where=where)

    def _pick(self, kind: NotFoundKind, name: str, rows: list[dict[str, Any]]) -> dict[str, Any]:
        if len(rows) > 1:
            logger.warning(
                "[RESOLVE] %d active %s rows named '%s'; using the earliest created.",
                len(rows),
                kind,
                name,
            )
        return earliest_created(rows)

    async def resolve_category(
        self, account_id: str, name: str, category_type: CategoryType = CategoryType.expense
    ) -> Category:
        rows = await self._active_categories(account_id, category_type, name)
        if not rows:
            names = await self.list_categories(account_id, category_type)
            raise NotFoundError("category", name, suggest_name(name, names))
        return Category.model_validate(self._pick("category", name, rows))

    async def resolve_card(self, account_id: str, name: str) -> Card:
        rows = await self._active_cards(account_id, name)
        if not rows:
            names = await self.list_cards(account_id)
            raise NotFoundError("card", name, suggest_name(name, names))
        return Card.model_validate(self._pick("card", name, rows))

    async def default_stock_category(self, account_id: str) -> Category:
        rows = await self._active_categories(account_id, CategoryType.stock)
        if not rows:
            raise NotFoundError("default_stock_category")
        return Category.model_validate(earliest_created(rows))

    async def list_categories(
        self, account_id: str, category_type: CategoryType = CategoryType.expense
    ) -> list[str]:
        rows = await self._active_categories(account_id, category_type)
        return sorted({row["name"] for row in rows})

    async def list_cards(self, account_id: str) -> list[str]:
        rows = await self._active_cards(account_id)
        return sorted({row["name"] for row in rows})

    async def categories_by_id(self, account_id: str) -> dict[str, Category]:
        """All of the account's categories, inactive ones included, for labelling history."""
        rows = await self.store.select(
            CATEGORIES_TABLE,
            columns=CATEGORY_COLUMNS,
            where=[eq("account_id", account_id)],
        )
        categories = [Category.model_validate(row) for row in rows]
        return {category.id: category for category in categories}
