from cashflow_sync.domain.errors import (
    AlreadyLinkedError,
    CommandValidationError,
    LedgerError,
    NotFoundError,
    UnknownCommandError,
)
from cashflow_sync.models import (
    BudgetStatus,
    CategoryShare,
    MonthlySummary,
    StockTransaction,
    Transaction,
)

HELP_TEXT = """*🏦 CashFlow Sync Bot*

📊 *Account Management:*
/link [email] - Link your Telegram to your account
/balance - Show your financial summary
/summary [YYYY-MM or all] - Spending by category

💸 *Expense Management:*
/add\\_expense [amount] [description] [category] [card]
Example: /add\\_expense 25.50 "Morning Coffee" "Food & Dining" "Main Card"

📈 *Stock Management:*
/add\\_stock [symbol] [shares] [price] [buy/sell]
Example: /add\\_stock AAPL 10 150.25 buy

💰 *Budget Management:*
/set\\_budget [category] [amount] [month-year]
Example: /set\\_budget "Food & Dining" 500 2024-12

📋 *Information:*
/categories - List expense categories
/cards - List payment cards

💡 *Tips:*
• Use quotes for multi-word names
• Category and card names are case-sensitive

Need help? Type /help anytime!"""

LINK_REQUIRED = "Please link your account first using: /link [your-email]"
NOT_UNDERSTOOD = "I don't understand. Type /help for available commands."
GENERIC_FAILURE = "❌ Something went wrong while saving your data. Please try again."

_MARKDOWN_SPECIALS = ("\\", "_", "*", "`", "[")

_STATUS_LABELS = {
    BudgetStatus.good: "✅ Within budget",
    BudgetStatus.warning: "⚠️ Near budget limit",
    BudgetStatus.over: "🚨 Over budget",
}


def escape_markdown(text: str) -> str:
    """Escape user text for Telegram's legacy Markdown parse mode."""
    for char in _MARKDOWN_SPECIALS:
        text = text.replace(char, f"\\{char}")
    return text


def money(value: float) -> str:
    return f"${value:,.2f}"


def format_quantity(value: float) -> str:
    return f"{value:g}"


def success(text: str) -> str:
    return f"✅ {text}"


def failure(text: str) -> str:
    return f"❌ {text}"


def unknown_command(command: str) -> str:
    return f"❓ Unknown command: {escape_markdown(command)}\n\nType /help for available commands."


def linked(created: bool) -> str:
    if created:
        return success("Account linked successfully!")
    return success("This Telegram account is already linked to that account.")


def expense_added(transaction: Transaction) -> str:
    return success(
        f"Transaction added: {money(transaction.amount)} for {escape_markdown(transaction.description)}"
    )


def trade_added(trade: StockTransaction) -> str:
    return success(
        f"Stock transaction added: {trade.transaction_type.value.upper()} "
        f"{format_quantity(trade.shares)} shares of {escape_markdown(trade.symbol)} "
        f"at {money(trade.price_per_share)}"
    )


def budget_set(category: str, amount: float, month: str) -> str:
    return success(f"Budget set: {money(amount)} for {escape_markdown(category)} in {month}")


def name_list(title: str, names: list[str], empty: str) -> str:
    if not names:
        return failure(empty)
    lines = "\n".join(f"• {escape_markdown(name)}" for name in names)
    return f"{title}\n\n{lines}"


def _budget_line(summary: MonthlySummary) -> str | None:
    if summary.budget is None or summary.budget_status is None:
        return None
    percentage = summary.total_expenses / summary.budget * 100
    return (
        f"🎯 Budget: {money(summary.total_expenses)} of {money(summary.budget)} "
        f"({percentage:.0f}%) {_STATUS_LABELS[summary.budget_status]}"
    )


def balance(summary: MonthlySummary) -> str:
    lines = [
        "💰 *Your Financial Summary:*",
        "",
        f"💸 This Month's Expenses: {money(summary.total_expenses)}",
    ]
    budget_line = _budget_line(summary)
    if budget_line:
        lines.append(budget_line)
    lines.extend([
        f"📊 Stock Portfolio Value: {money(summary.portfolio_value)}",
        f"📈 Net Worth: {money(summary.net_worth)}",
    ])
    return "\n".join(lines)


def monthly_report(summary: MonthlySummary, shares: list[CategoryShare]) -> str:
    label = "All time" if summary.window.is_all else summary.window.month
    lines = [
        f"🗓 *Spending for {label}:*",
        "",
        f"💸 Total: {money(summary.total_expenses)} across {summary.transaction_count} transaction(s)",
    ]
    budget_line = _budget_line(summary)
    if budget_line:
        lines.append(budget_line)
    if shares:
        lines.append("")
        lines.extend(
            f"• {escape_markdown(share.name)}: {money(share.total)} ({share.percentage:.1f}%, {share.count})"
            for share in shares
        )
    return "\n".join(lines)


def _not_found(error: NotFoundError) -> str:
    if error.kind == "email":
        return "Email not found. Please use the email you registered with."
    if error.kind == "default_stock_category":
        return "No stock category found. Please create a stock category first."
    label = "Category" if error.kind == "category" else "Card"
    text = f'{label} "{escape_markdown(error.name or "")}" not found.'
    if error.suggestion:
        text += f' Did you mean "{escape_markdown(error.suggestion)}"?'
    return text


def error_text(error: LedgerError) -> str:
    if isinstance(error, NotFoundError):
        return failure(_not_found(error))
    if isinstance(error, AlreadyLinkedError):
        if error.side == "account":
            return failure("This account is already linked to another Telegram account.")
        return failure("This Telegram account is already linked to another user.")
    if isinstance(error, CommandValidationError):
        return failure(escape_markdown(error.message))
    if isinstance(error, UnknownCommandError):
        return unknown_command(error.command)
    return GENERIC_FAILURE
