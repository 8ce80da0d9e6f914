from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from cashflow_sync.bot import messages
from cashflow_sync.bot.commands import (
    AddExpenseArgs,
    AddStockArgs,
    CommandArgs,
    LinkArgs,
    SetBudgetArgs,
    SummaryArgs,
    parse_add_expense,
    parse_add_stock,
    parse_balance,
    parse_cards,
    parse_categories,
    parse_help,
    parse_link,
    parse_set_budget,
    parse_summary,
)
from cashflow_sync.domain.errors import LedgerError, UnknownCommandError
from cashflow_sync.domain.tokenizer import split_command, tokenize
from cashflow_sync.logger import get_logger
from cashflow_sync.models import CategoryType
from cashflow_sync.services.aggregation import AggregationEngine
from cashflow_sync.services.budgets import BudgetPlanner
from cashflow_sync.services.identity import IdentityLinker
from cashflow_sync.services.ledger import LedgerWriter
from cashflow_sync.services.resolver import NameResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandContext:
    chat_id: int
    account_id: str | None


Handler = Callable[[CommandContext, Any], Awaitable[str]]


@dataclass(frozen=True)
class CommandSpec:
    parse: Callable[[list[str]], CommandArgs]
    handler: Handler
    requires_account: bool = True


class CommandDispatcher:
    def __init__(
        self,
        identity: IdentityLinker,
        resolver: NameResolver,
        ledger: LedgerWriter,
        budgets: BudgetPlanner,
        aggregation: AggregationEngine,
    ) -> None:
        self.identity = identity
        self.resolver = resolver
        self.ledger = ledger
        self.budgets = budgets
        self.aggregation = aggregation
        self.registry: dict[str, CommandSpec] = {
            "/start": CommandSpec(parse_help, self.handle_help),
            "/help": CommandSpec(parse_help, self.handle_help),
            "/link": CommandSpec(parse_link, self.handle_link, requires_account=False),
            "/balance": CommandSpec(parse_balance, self.handle_balance),
            "/summary": CommandSpec(parse_summary, self.handle_summary),
            "/categories": CommandSpec(parse_categories, self.handle_categories),
            "/cards": CommandSpec(parse_cards, self.handle_cards),
            "/add_expense": CommandSpec(parse_add_expense, self.handle_add_expense),
            "/add_stock": CommandSpec(parse_add_stock, self.handle_add_stock),
            "/set_budget": CommandSpec(parse_set_budget, self.handle_set_budget),
        }

    async def dispatch(self, chat_id: int, text: str | None) -> str | None:
        """Turn one chat message into a reply. Returns None when there is nothing to answer."""
        tokens = tokenize(text)
        if not tokens:
            return None

        command, args = split_command(tokens)
        if command is None:
            return messages.NOT_UNDERSTOOD

        try:
            return await self._run(chat_id, command, args)
        except LedgerError as exc:
            logger.info("[BOT] %s from chat %s failed: %s", command, chat_id, exc)
            return messages.error_text(exc)

    async def _run(self, chat_id: int, command: str, args: list[str]) -> str:
        spec = self.registry.get(command)
        if spec is None:
            raise UnknownCommandError(command)

        # Arguments are checked before any store round-trip.
        parsed = spec.parse(args)

        account_id = None
        if spec.requires_account:
            account_id = await self.identity.account_for_chat(chat_id)
            if account_id is None:
                return messages.LINK_REQUIRED

        logger.debug("[BOT] Processing %s for chat %s.", command, chat_id)
        return await spec.handler(CommandContext(chat_id=chat_id, account_id=account_id), parsed)

    async def handle_help(self, context: CommandContext, args: Any) -> str:
        return messages.HELP_TEXT

    async def handle_link(self, context: CommandContext, args: LinkArgs) -> str:
        result = await self.identity.link(context.chat_id, args.email)
        return messages.linked(result.created)

    async def handle_balance(self, context: CommandContext, args: Any) -> str:
        summary = await self.aggregation.monthly_summary(context.account_id)
        return messages.balance(summary)

    async def handle_summary(self, context: CommandContext, args: SummaryArgs) -> str:
        summary = await self.aggregation.monthly_summary(context.account_id, args.month)
        shares = await self.aggregation.category_breakdown_for(context.account_id, summary.window.month)
        return messages.monthly_report(summary, shares)

    async def handle_categories(self, context: CommandContext, args: Any) -> str:
        names = await self.resolver.list_categories(context.account_id, CategoryType.expense)
        return messages.name_list(
            "📋 *Available Expense Categories:*",
            names,
            "No expense categories found. Please create categories in the dashboard first.",
        )

    async def handle_cards(self, context: CommandContext, args: Any) -> str:
        names = await self.resolver.list_cards(context.account_id)
        return messages.name_list(
            "💳 *Available Cards:*",
            names,
            "No cards found. Please create cards in the dashboard first.",
        )

    async def handle_add_expense(self, context: CommandContext, args: AddExpenseArgs) -> str:
        transaction = await self.ledger.record_expense(
            context.account_id,
            args.amount,
            args.description,
            args.category,
            args.card,
        )
        return messages.expense_added(transaction)

    async def handle_add_stock(self, context: CommandContext, args: AddStockArgs) -> str:
        trade = await self.ledger.record_stock_trade(
            context.account_id,
            args.symbol,
            args.shares,
            args.price,
            args.trade_type,
        )
        return messages.trade_added(trade)

    async def handle_set_budget(self, context: CommandContext, args: SetBudgetArgs) -> str:
        budget = await self.budgets.set_budget(context.account_id, args.category, args.amount, args.month)
        return messages.budget_set(args.category, budget.amount, budget.month_year)
