import math
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from cashflow_sync.domain.errors import CommandValidationError
from cashflow_sync.domain.periods import ALL_MONTHS, is_all_scope, is_month_key
from cashflow_sync.models import TradeType

PositiveFloat = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class HelpArgs(BaseModel):
    command: Literal["/help"] = "/help"


class LinkArgs(BaseModel):
    command: Literal["/link"] = "/link"
    email: str


class BalanceArgs(BaseModel):
    command: Literal["/balance"] = "/balance"


class SummaryArgs(BaseModel):
    command: Literal["/summary"] = "/summary"
    month: str | None = None


class CategoriesArgs(BaseModel):
    command: Literal["/categories"] = "/categories"


class CardsArgs(BaseModel):
    command: Literal["/cards"] = "/cards"


class AddExpenseArgs(BaseModel):
    command: Literal["/add_expense"] = "/add_expense"
    amount: PositiveFloat
    description: str
    category: str
    card: str


class AddStockArgs(BaseModel):
    command: Literal["/add_stock"] = "/add_stock"
    symbol: str = Field(min_length=1)
    shares: PositiveFloat
    price: PositiveFloat
    trade_type: TradeType


class SetBudgetArgs(BaseModel):
    command: Literal["/set_budget"] = "/set_budget"
    category: str
    amount: PositiveFloat
    month: str = Field(pattern=r"^\d{4}-\d{2}$")


CommandArgs = Annotated[
    HelpArgs
    | LinkArgs
    | BalanceArgs
    | SummaryArgs
    | CategoriesArgs
    | CardsArgs
    | AddExpenseArgs
    | AddStockArgs
    | SetBudgetArgs,
    Field(discriminator="command"),
]


LINK_USAGE = "Usage: /link [your-email]\nExample: /link john@example.com"

ADD_EXPENSE_USAGE = (
    "Usage: /add_expense [amount] [description] [category] [card]\n\n"
    'Example: /add_expense 25.50 "Morning Coffee" "Food & Dining" "Main Card"\n\n'
    "Use /categories and /cards to see available options."
)

ADD_STOCK_USAGE = (
    "Usage: /add_stock [symbol] [shares] [price] [buy/sell]\n\n"
    "Example: /add_stock AAPL 10 150.25 buy"
)

SET_BUDGET_USAGE = (
    "Usage: /set_budget [category] [amount] [month-year]\n\n"
    'Example: /set_budget "Food & Dining" 500 2024-12\n\n'
    "Use /categories to see available categories."
)

SUMMARY_USAGE = "Usage: /summary [YYYY-MM or all]\nExample: /summary 2024-12"

MONTH_FORMAT_MESSAGE = "Invalid month format. Use YYYY-MM (e.g., 2024-12)."


def _usage(message: str) -> CommandValidationError:
    return CommandValidationError("arg_count", message)


def parse_positive(raw: str, field: Literal["amount", "shares", "price"], message: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise CommandValidationError(field, message) from exc
    if not math.isfinite(value) or value <= 0:
        raise CommandValidationError(field, message)
    return value


def parse_month(raw: str) -> str:
    if not is_month_key(raw):
        raise CommandValidationError("month", MONTH_FORMAT_MESSAGE)
    return raw


def _no_args(model: type[BaseModel]):
    def parse(args: list[str]) -> BaseModel:
        return model()
    return parse


def parse_link(args: list[str]) -> LinkArgs:
    if len(args) != 1:
        raise _usage(LINK_USAGE)
    return LinkArgs(email=args[0])


def parse_summary(args: list[str]) -> SummaryArgs:
    if len(args) > 1:
        raise _usage(SUMMARY_USAGE)
    if not args:
        return SummaryArgs()
    if is_all_scope(args[0]):
        return SummaryArgs(month=ALL_MONTHS)
    return SummaryArgs(month=parse_month(args[0]))


def parse_add_expense(args: list[str]) -> AddExpenseArgs:
    if len(args) < 4:
        raise _usage(ADD_EXPENSE_USAGE)
    amount = parse_positive(args[0], "amount", "Invalid amount. Please enter a positive number.")
    # Unquoted multi-word descriptions: category and card are always the last two tokens.
    return AddExpenseArgs(
        amount=amount,
        description=" ".join(args[1:-2]),
        category=args[-2],
        card=args[-1],
    )


def parse_add_stock(args: list[str]) -> AddStockArgs:
    if len(args) != 4:
        raise _usage(ADD_STOCK_USAGE)
    symbol = args[0].strip().upper()
    if not symbol:
        raise CommandValidationError("symbol", "Invalid symbol.")
    shares = parse_positive(args[1], "shares", "Invalid shares amount. Please enter a positive number.")
    price = parse_positive(args[2], "price", "Invalid price. Please enter a positive number.")
    try:
        trade_type = TradeType(args[3].lower())
    except ValueError as exc:
        raise CommandValidationError("type", "Invalid transaction type. Use 'buy' or 'sell'.") from exc
    return AddStockArgs(symbol=symbol, shares=shares, price=price, trade_type=trade_type)


def parse_set_budget(args: list[str]) -> SetBudgetArgs:
    if len(args) < 3:
        raise _usage(SET_BUDGET_USAGE)
    amount = parse_positive(args[-2], "amount", "Invalid amount. Please enter a positive number.")
    month = parse_month(args[-1])
    return SetBudgetArgs(category=" ".join(args[:-2]), amount=amount, month=month)


parse_help = _no_args(HelpArgs)
parse_balance = _no_args(BalanceArgs)
parse_categories = _no_args(CategoriesArgs)
parse_cards = _no_args(CardsArgs)
