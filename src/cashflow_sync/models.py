from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class CategoryType(str, Enum):
    expense = "expense"
    stock = "stock"


class TradeType(str, Enum):
    buy = "buy"
    sell = "sell"


class BudgetStatus(str, Enum):
    good = "GOOD"
    warning = "WARNING"
    over = "OVER"


class StoreRecord(BaseModel):
    # Rows come back with whatever columns were selected; ignore the rest.
    model_config = ConfigDict(extra="ignore")


class Account(StoreRecord):
    id: str
    email: str


class ChatLink(StoreRecord):
    chat_id: int
    account_id: str
    created_at: datetime | None = None


class Category(StoreRecord):
    id: str
    account_id: str | None = None
    name: str
    category_type: CategoryType
    color: str | None = None
    is_active: bool = True
    parent_id: str | None = None
    created_at: datetime | None = None


class Card(StoreRecord):
    id: str
    account_id: str | None = None
    name: str
    is_active: bool = True
    created_at: datetime | None = None


class Transaction(StoreRecord):
    id: str | None = None
    account_id: str
    amount: float
    description: str
    category_id: str | None = None
    card_id: str | None = None
    transaction_date: date


class StockTransaction(StoreRecord):
    id: str | None = None
    account_id: str
    symbol: str
    shares: float
    price_per_share: float
    total_amount: float
    transaction_type: TradeType
    category_id: str | None = None
    transaction_date: date


class Holding(StoreRecord):
    account_id: str | None = None
    symbol: str | None = None
    shares: float
    average_price: float
    total_cost: float = 0.0
    current_price: float | None = None


class Budget(StoreRecord):
    id: str | None = None
    account_id: str
    category_id: str | None = None
    amount: float
    month_year: str


class MonthWindow(BaseModel):
    month: str
    start: date | None = None
    end: date | None = None

    @property
    def is_all(self) -> bool:
        return self.start is None


class MonthlySummary(BaseModel):
    window: MonthWindow
    total_expenses: float
    transaction_count: int
    lifetime_expenses: float
    portfolio_value: float
    total_cost: float
    budget: float | None = None
    budget_status: BudgetStatus | None = None
    budget_progress: float | None = None
    net_worth: float


class CategoryShare(BaseModel):
    name: str
    color: str
    total: float
    count: int
    percentage: float


class MonthlyTotal(BaseModel):
    month: str
    total: float


class LinkResult(BaseModel):
    account_id: str
    chat_id: int
    created: bool
