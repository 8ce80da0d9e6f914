from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date

from cashflow_sync.domain.periods import current_month_key, month_key_of, month_window
from cashflow_sync.integration.supabase import SupabaseClient, eq, gte, lte
from cashflow_sync.logger import get_logger
from cashflow_sync.models import (
    Budget,
    BudgetStatus,
    Category,
    CategoryShare,
    Holding,
    MonthlySummary,
    MonthlyTotal,
    MonthWindow,
    Transaction,
)
from cashflow_sync.services.resolver import NameResolver

logger = get_logger(__name__)

TRANSACTIONS_TABLE = "transactions"
HOLDINGS_TABLE = "holdings"
BUDGETS_TABLE = "budgets"

TRANSACTION_COLUMNS = "id,account_id,amount,description,category_id,card_id,transaction_date"
HOLDING_COLUMNS = "account_id,symbol,shares,average_price,total_cost,current_price"

UNCATEGORIZED_NAME = "Uncategorized"
DEFAULT_CATEGORY_COLOR = "#64748b"

WARNING_THRESHOLD_PERCENT = 80.0
OVER_THRESHOLD_PERCENT = 100.0


def budget_status(spent: float, budget: float) -> BudgetStatus:
    if budget <= 0:
        raise ValueError("budget must be positive")
    percentage = spent / budget * 100
    if percentage > OVER_THRESHOLD_PERCENT:
        return BudgetStatus.over
    if percentage > WARNING_THRESHOLD_PERCENT:
        return BudgetStatus.warning
    return BudgetStatus.good


def budget_progress(spent: float, budget: float) -> float:
    """Fill ratio for a progress bar, capped at 1.0."""
    if budget <= 0:
        raise ValueError("budget must be positive")
    return min(spent / budget, 1.0)


def holding_price(holding: Holding) -> float:
    # No market data here: fall back to the stored average cost.
    return holding.current_price if holding.current_price is not None else holding.average_price


def holdings_value(holdings: Iterable[Holding]) -> float:
    return sum(holding.shares * holding_price(holding) for holding in holdings)


def total_amount(transactions: Iterable[Transaction]) -> float:
    return sum(transaction.amount for transaction in transactions)


def category_breakdown(
    transactions: Sequence[Transaction],
    categories: Mapping[str, Category],
) -> list[CategoryShare]:
    grouped: dict[str, dict] = {}
    for transaction in transactions:
        category = categories.get(transaction.category_id or "")
        name = category.name if category else UNCATEGORIZED_NAME
        color = (category.color if category else None) or DEFAULT_CATEGORY_COLOR
        entry = grouped.setdefault(name, {"name": name, "color": color, "total": 0.0, "count": 0})
        entry["total"] += transaction.amount
        entry["count"] += 1

    overall = sum(entry["total"] for entry in grouped.values())
    shares = [
        CategoryShare(
            name=entry["name"],
            color=entry["color"],
            total=entry["total"],
            count=entry["count"],
            percentage=entry["total"] / overall * 100 if overall else 0.0,
        )
        for entry in grouped.values()
    ]
    shares.sort(key=lambda share: (-share.total, share.name))
    return shares


def monthly_totals(transactions: Iterable[Transaction]) -> list[MonthlyTotal]:
    totals: dict[str, float] = {}
    for transaction in transactions:
        key = month_key_of(transaction.transaction_date)
        totals[key] = totals.get(key, 0.0) + transaction.amount
    return [MonthlyTotal(month=key, total=totals[key]) for key in sorted(totals)]


class AggregationEngine:
    def __init__(
        self,
        store: SupabaseClient,
        resolver: NameResolver,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.clock = clock

    def resolve_window(self, month: str | None) -> MonthWindow:
        return month_window(month or current_month_key(self.clock()))

    async def transactions(self, account_id: str, window: MonthWindow | None = None) -> list[Transaction]:
        where = [eq("account_id", account_id)]
        if window is not None and not window.is_all:
            where.extend([
                gte("transaction_date", window.start),
                lte("transaction_date", window.end),
            ])
        rows = await self.store.select(
            TRANSACTIONS_TABLE,
            columns=TRANSACTION_COLUMNS,
            where=where,
            order="transaction_date.asc",
        )
        return [Transaction.model_validate(row) for row in rows]

    async def holdings(self, account_id: str) -> list[Holding]:
        rows = await self.store.select(
            HOLDINGS_TABLE,
            columns=HOLDING_COLUMNS,
            where=[eq("account_id", account_id)],
        )
        return [Holding.model_validate(row) for row in rows]

    async def budget_for(self, account_id: str, window: MonthWindow) -> float | None:
        if window.is_all:
            return None
        rows = await self.store.select(
            BUDGETS_TABLE,
            columns="account_id,category_id,amount,month_year",
            where=[eq("account_id", account_id), eq("month_year", window.month)],
            limit=1,
        )
        if not rows:
            return None
        return Budget.model_validate(rows[0]).amount

    async def monthly_summary(self, account_id: str, month: str | None = None) -> MonthlySummary:
        window = self.resolve_window(month)

        lifetime = await self.transactions(account_id)
        if window.is_all:
            in_window = lifetime
        else:
            in_window = await self.transactions(account_id, window)
        holdings = await self.holdings(account_id)
        budget = await self.budget_for(account_id, window)

        spent = total_amount(in_window)
        lifetime_expenses = total_amount(lifetime)
        portfolio_value = holdings_value(holdings)

        status = None
        progress = None
        if budget and budget > 0:
            status = budget_status(spent, budget)
            progress = budget_progress(spent, budget)

        summary = MonthlySummary(
            window=window,
            total_expenses=spent,
            transaction_count=len(in_window),
            lifetime_expenses=lifetime_expenses,
            portfolio_value=portfolio_value,
            total_cost=sum(holding.total_cost for holding in holdings),
            budget=budget,
            budget_status=status,
            budget_progress=progress,
            net_worth=portfolio_value - lifetime_expenses,
        )
        logger.debug(
            "[SUMMARY] Account %s %s: spent=%.2f lifetime=%.2f portfolio=%.2f",
            account_id,
            window.month,
            spent,
            lifetime_expenses,
            portfolio_value,
        )
        return summary

    async def category_breakdown_for(self, account_id: str, month: str | None = None) -> list[CategoryShare]:
        window = self.resolve_window(month)
        transactions = await self.transactions(account_id, window)
        categories = await self.resolver.categories_by_id(account_id)
        return category_breakdown(transactions, categories)

    async def monthly_trend_for(self, account_id: str) -> list[MonthlyTotal]:
        return monthly_totals(await self.transactions(account_id))
