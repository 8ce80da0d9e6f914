from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from itertools import count
from typing import Any

import pytest

from cashflow_sync.bot.dispatcher import CommandDispatcher
from cashflow_sync.integration.supabase import Condition, UniqueViolationError
from cashflow_sync.services.aggregation import AggregationEngine
from cashflow_sync.services.budgets import BudgetPlanner
from cashflow_sync.services.identity import IdentityLinker
from cashflow_sync.services.ledger import LedgerWriter
from cashflow_sync.services.resolver import NameResolver

TODAY = date(2024, 2, 15)


def _normalize(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _matches(row: dict[str, Any], condition: Condition) -> bool:
    actual = _normalize(row.get(condition.column))
    expected = _normalize(condition.value)
    if condition.op == "is":
        return actual is None
    if condition.op == "eq":
        return actual == expected
    if actual is None:
        return False
    if condition.op == "gte":
        return actual >= expected
    if condition.op == "lte":
        return actual <= expected
    raise AssertionError(f"unsupported operator {condition.op}")


class InMemoryStore:
    """Stand-in for SupabaseClient that keeps tables in dicts."""

    UNIQUE = {
        "chat_links": [("chat_id",), ("account_id",)],
    }

    def __init__(self, *, reverse_results: bool = False) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []
        self.reverse_results = reverse_results
        self._ids = count(1)

    def add(self, table: str, **row: Any) -> dict[str, Any]:
        row.setdefault("id", f"{table}-{next(self._ids)}")
        self.tables[table].append(row)
        return row

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        where: Sequence[Condition] = (),
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("select", table))
        rows = [dict(row) for row in self.tables[table] if all(_matches(row, c) for c in where)]
        if order:
            for part in reversed(order.split(",")):
                column, _, direction = part.partition(".")
                rows.sort(key=lambda r: _normalize(r.get(column)) or "", reverse=direction == "desc")
        if self.reverse_results:
            rows.reverse()
        if limit is not None:
            rows = rows[:limit]
        return rows

    def _check_unique(self, table: str, row: dict[str, Any]) -> None:
        for columns in self.UNIQUE.get(table, []):
            for existing in self.tables[table]:
                if all(existing.get(column) == row.get(column) for column in columns):
                    raise UniqueViolationError("duplicate key value", status_code=409, code="23505")

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("insert", table))
        self._check_unique(table, row)
        return dict(self.add(table, **dict(row)))

    async def upsert(self, table: str, row: dict[str, Any], *, on_conflict: str) -> dict[str, Any]:
        self.calls.append(("upsert", table))
        keys = on_conflict.split(",")
        for existing in self.tables[table]:
            if all(existing.get(key) == row.get(key) for key in keys):
                existing.update(row)
                return dict(existing)
        return dict(self.add(table, **dict(row)))

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] != "select"]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def account(store: InMemoryStore) -> dict[str, Any]:
    return store.add("accounts", id="acc-1", email="jane@example.com")


@pytest.fixture
def ledger_setup(store: InMemoryStore, account: dict[str, Any]) -> InMemoryStore:
    """A linked account with one expense category, one stock category and one card."""
    store.add("chat_links", chat_id=42, account_id=account["id"])
    store.add(
        "categories",
        id="cat-food",
        account_id=account["id"],
        name="Food",
        category_type="expense",
        color="#ff0000",
        is_active=True,
        created_at="2024-01-01T00:00:00+00:00",
    )
    store.add(
        "categories",
        id="cat-stocks",
        account_id=account["id"],
        name="Stocks",
        category_type="stock",
        color="#00ff00",
        is_active=True,
        created_at="2024-01-02T00:00:00+00:00",
    )
    store.add(
        "cards",
        id="card-main",
        account_id=account["id"],
        name="Main",
        is_active=True,
        created_at="2024-01-01T00:00:00+00:00",
    )
    return store


@pytest.fixture
def resolver(store: InMemoryStore) -> NameResolver:
    return NameResolver(store)


@pytest.fixture
def identity(store: InMemoryStore) -> IdentityLinker:
    return IdentityLinker(store)


@pytest.fixture
def ledger(store: InMemoryStore, resolver: NameResolver) -> LedgerWriter:
    return LedgerWriter(store, resolver, clock=lambda: TODAY)


@pytest.fixture
def budgets(store: InMemoryStore, resolver: NameResolver) -> BudgetPlanner:
    return BudgetPlanner(store, resolver)


@pytest.fixture
def aggregation(store: InMemoryStore, resolver: NameResolver) -> AggregationEngine:
    return AggregationEngine(store, resolver, clock=lambda: TODAY)


@pytest.fixture
def dispatcher(
    identity: IdentityLinker,
    resolver: NameResolver,
    ledger: LedgerWriter,
    budgets: BudgetPlanner,
    aggregation: AggregationEngine,
) -> CommandDispatcher:
    return CommandDispatcher(
        identity=identity,
        resolver=resolver,
        ledger=ledger,
        budgets=budgets,
        aggregation=aggregation,
    )
