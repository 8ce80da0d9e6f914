from unittest.mock import AsyncMock

import pytest

from cashflow_sync.bot import messages
from cashflow_sync.integration.supabase import StoreError


@pytest.mark.anyio
async def test_negative_amount_rejected_before_any_store_call(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, '/add_expense -5 "Coffee" "Food" "Main"')

    assert reply == "❌ Invalid amount. Please enter a positive number."
    assert store.calls == []


@pytest.mark.anyio
async def test_add_expense_flow(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, '/add_expense 25.50 "Coffee" "Food" "Main"')

    assert reply == "✅ Transaction added: $25.50 for Coffee"
    assert store.writes() == [("insert", "transactions")]
    row = store.tables["transactions"][0]
    assert row["amount"] == 25.50
    assert row["category_id"] == "cat-food"
    assert row["card_id"] == "card-main"


@pytest.mark.anyio
async def test_add_expense_unquoted_description(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/add_expense 12 lunch with team Food Main")

    assert reply == "✅ Transaction added: $12.00 for lunch with team"


@pytest.mark.anyio
async def test_add_expense_with_missing_args_shows_usage(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/add_expense 10 Food")

    assert reply.startswith("❌ Usage: /add\\_expense")
    assert store.calls == []


@pytest.mark.anyio
async def test_add_expense_unknown_card_writes_nothing(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, '/add_expense 10 "Lunch" "Food" "Mian"')

    assert reply.startswith('❌ Card "Mian" not found.')
    assert store.writes() == []


@pytest.mark.anyio
async def test_command_requires_link(store, account, dispatcher) -> None:
    reply = await dispatcher.dispatch(7, "/balance")

    assert reply == messages.LINK_REQUIRED
    assert store.writes() == []


@pytest.mark.anyio
async def test_unknown_command_does_not_require_link(store, dispatcher) -> None:
    reply = await dispatcher.dispatch(7, "/frobnicate now")

    assert reply == "❓ Unknown command: /frobnicate\n\nType /help for available commands."
    assert store.calls == []


@pytest.mark.anyio
async def test_plain_text_is_not_understood(dispatcher) -> None:
    assert await dispatcher.dispatch(42, "hello bot") == messages.NOT_UNDERSTOOD


@pytest.mark.anyio
async def test_blank_message_gets_no_reply(dispatcher) -> None:
    assert await dispatcher.dispatch(42, "   ") is None


@pytest.mark.anyio
@pytest.mark.parametrize("command", ["/start", "/help", "/HELP@CashFlowBot"])
async def test_help_for_linked_chat(store, ledger_setup, dispatcher, command) -> None:
    assert await dispatcher.dispatch(42, command) == messages.HELP_TEXT


@pytest.mark.anyio
async def test_help_for_unlinked_chat_asks_to_link(store, account, dispatcher) -> None:
    assert await dispatcher.dispatch(7, "/help") == messages.LINK_REQUIRED


@pytest.mark.anyio
async def test_link_then_link_again(store, account, dispatcher) -> None:
    first = await dispatcher.dispatch(7, "/link jane@example.com")
    second = await dispatcher.dispatch(7, "/link jane@example.com")
    other_chat = await dispatcher.dispatch(8, "/link jane@example.com")

    assert first == "✅ Account linked successfully!"
    assert second.startswith("✅")
    assert other_chat == "❌ This account is already linked to another Telegram account."
    assert len(store.tables["chat_links"]) == 1


@pytest.mark.anyio
async def test_link_unknown_email(store, dispatcher) -> None:
    reply = await dispatcher.dispatch(7, "/link ghost@example.com")

    assert reply == "❌ Email not found. Please use the email you registered with."


@pytest.mark.anyio
async def test_add_stock_with_bad_type(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/add_stock AAPL 10 150.25 hold")

    assert reply == "❌ Invalid transaction type. Use 'buy' or 'sell'."
    assert store.calls == []


@pytest.mark.anyio
async def test_add_stock_flow(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/add_stock aapl 10 150.25 Buy")

    assert reply == "✅ Stock transaction added: BUY 10 shares of AAPL at $150.25"
    assert store.tables["stock_transactions"][0]["symbol"] == "AAPL"


@pytest.mark.anyio
async def test_add_stock_sell(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/add_stock msft 2.5 400 SELL")

    assert reply == "✅ Stock transaction added: SELL 2.5 shares of MSFT at $400.00"
    row = store.tables["stock_transactions"][0]
    assert row["transaction_type"] == "sell"
    assert row["total_amount"] == 1000.0


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["/add_stock AAPL 10 150", "/add_stock AAPL 10 150 buy extra"])
async def test_add_stock_requires_exactly_four_args(store, ledger_setup, dispatcher, text) -> None:
    reply = await dispatcher.dispatch(42, text)

    assert reply.startswith("❌ Usage: /add\\_stock")
    assert store.calls == []


@pytest.mark.anyio
async def test_set_budget_with_invalid_month(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, '/set_budget "Food" 500 2024-13')

    assert reply == "❌ Invalid month format. Use YYYY-MM (e.g., 2024-12)."
    assert store.calls == []


@pytest.mark.anyio
async def test_set_budget_flow(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, '/set_budget "Food" 500 2024-03')

    assert reply == "✅ Budget set: $500.00 for Food in 2024-03"
    assert store.writes() == [("upsert", "budgets")]


@pytest.mark.anyio
async def test_balance(store, ledger_setup, dispatcher) -> None:
    store.add("transactions", account_id="acc-1", amount=1200.0, description="Rent", category_id="cat-food",
              transaction_date="2024-01-03")
    store.add("transactions", account_id="acc-1", amount=90.0, description="Food", category_id="cat-food",
              transaction_date="2024-02-03")
    store.add("holdings", account_id="acc-1", symbol="VTI", shares=20, average_price=250.0)
    store.add("budgets", account_id="acc-1", category_id="cat-food", amount=100.0, month_year="2024-02")

    reply = await dispatcher.dispatch(42, "/balance")

    assert "This Month's Expenses: $90.00" in reply
    assert "Stock Portfolio Value: $5,000.00" in reply
    assert "Net Worth: $3,710.00" in reply
    assert "Near budget limit" in reply


@pytest.mark.anyio
async def test_summary_for_month(store, ledger_setup, dispatcher) -> None:
    store.add("transactions", account_id="acc-1", amount=40.0, description="Lunch", category_id="cat-food",
              transaction_date="2024-01-10")

    reply = await dispatcher.dispatch(42, "/summary 2024-01")

    assert "Spending for 2024-01" in reply
    assert "• Food: $40.00 (100.0%, 1)" in reply


@pytest.mark.anyio
async def test_summary_rejects_bad_month(store, ledger_setup, dispatcher) -> None:
    reply = await dispatcher.dispatch(42, "/summary january")

    assert reply == "❌ Invalid month format. Use YYYY-MM (e.g., 2024-12)."


@pytest.mark.anyio
async def test_categories_and_cards(store, ledger_setup, dispatcher) -> None:
    categories = await dispatcher.dispatch(42, "/categories")
    cards = await dispatcher.dispatch(42, "/cards")

    assert categories == "📋 *Available Expense Categories:*\n\n• Food"
    assert cards == "💳 *Available Cards:*\n\n• Main"


@pytest.mark.anyio
async def test_store_failure_becomes_generic_reply(store, ledger_setup, dispatcher) -> None:
    store.insert = AsyncMock(side_effect=StoreError("connection reset"))

    reply = await dispatcher.dispatch(42, '/add_expense 10 "Lunch" "Food" "Main"')

    assert reply == messages.GENERIC_FAILURE
