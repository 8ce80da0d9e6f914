import math
from collections.abc import Callable
from datetime import date

from cashflow_sync.domain.errors import CommandValidationError
from cashflow_sync.integration.supabase import SupabaseClient
from cashflow_sync.logger import get_logger
from cashflow_sync.models import CategoryType, StockTransaction, TradeType, Transaction
from cashflow_sync.services.resolver import NameResolver

logger = get_logger(__name__)

TRANSACTIONS_TABLE = "transactions"
STOCK_TRANSACTIONS_TABLE = "stock_transactions"


def require_positive(value: float, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CommandValidationError(field, f"Invalid {field}. Please enter a positive number.")
    if not math.isfinite(value) or value <= 0:
        raise CommandValidationError(field, f"Invalid {field}. Please enter a positive number.")
    return float(value)


class LedgerWriter:
    """Appends expense and trade rows. Rows are never updated from here."""

    def __init__(
        self,
        store: SupabaseClient,
        resolver: NameResolver,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.clock = clock

    async def record_expense(
        self,
        account_id: str,
        amount: float,
        description: str,
        category_name: str,
        card_name: str,
    ) -> Transaction:
        amount = require_positive(amount, "amount")

        # Both names must resolve before anything is written.
        category = await self.resolver.resolve_category(account_id, category_name, CategoryType.expense)
        card = await self.resolver.resolve_card(account_id, card_name)

        transaction = Transaction(
            account_id=account_id,
            amount=amount,
            description=description,
            category_id=category.id,
            card_id=card.id,
            transaction_date=self.clock(),
        )
        row = await self.store.insert(
            TRANSACTIONS_TABLE,
            transaction.model_dump(mode="json", exclude_none=True),
        )
        stored = Transaction.model_validate(row)
        logger.info(
            "[LEDGER] Expense %.2f '%s' recorded for account %s (category=%s, card=%s).",
            stored.amount,
            stored.description,
            account_id,
            category.name,
            card.name,
        )
        return stored

    async def record_stock_trade(
        self,
        account_id: str,
        symbol: str,
        shares: float,
        price: float,
        trade_type: TradeType | str,
    ) -> StockTransaction:
        shares = require_positive(shares, "shares")
        price = require_positive(price, "price")
        try:
            trade_type = TradeType(getattr(trade_type, "value", trade_type).lower())
        except ValueError as exc:
            raise CommandValidationError("type", "Invalid transaction type. Use 'buy' or 'sell'.") from exc
        symbol = symbol.strip().upper()
        if not symbol:
            raise CommandValidationError("symbol", "Invalid symbol.")

        category = await self.resolver.default_stock_category(account_id)

        trade = StockTransaction(
            account_id=account_id,
            symbol=symbol,
            shares=shares,
            price_per_share=price,
            total_amount=shares * price,
            transaction_type=trade_type,
            category_id=category.id,
            transaction_date=self.clock(),
        )
        row = await self.store.insert(
            STOCK_TRANSACTIONS_TABLE,
            trade.model_dump(mode="json", exclude_none=True),
        )
        stored = StockTransaction.model_validate(row)
        logger.info(
            "[LEDGER] %s %s x %s @ %.2f recorded for account %s.",
            stored.transaction_type.value.upper(),
            stored.shares,
            stored.symbol,
            stored.price_per_share,
            account_id,
        )
        return stored
