from cashflow_sync.domain.tokenizer import split_command, tokenize


def test_tokenize_keeps_quoted_spans_whole() -> None:
    assert tokenize('foo "bar baz" qux') == ["foo", "bar baz", "qux"]


def test_tokenize_collapses_whitespace_runs() -> None:
    assert tokenize("  /add_stock   AAPL\t10  150.25 buy ") == ["/add_stock", "AAPL", "10", "150.25", "buy"]


def test_tokenize_full_expense_command() -> None:
    tokens = tokenize('/add_expense 25.50 "Morning Coffee" "Food & Dining" "Main Card"')
    assert tokens == ["/add_expense", "25.50", "Morning Coffee", "Food & Dining", "Main Card"]


def test_tokenize_unterminated_quote_degrades_to_whitespace_split() -> None:
    assert tokenize('/add_expense 5 "Morning Coffee') == ["/add_expense", "5", "Morning", "Coffee"]


def test_tokenize_blank_text() -> None:
    assert tokenize("") == []
    assert tokenize("   ") == []
    assert tokenize(None) == []


def test_split_command_normalizes_command() -> None:
    assert split_command(["/Help@CashFlowBot"]) == ("/help", [])
    assert split_command(["/link", "jane@example.com"]) == ("/link", ["jane@example.com"])


def test_split_command_rejects_plain_text() -> None:
    command, args = split_command(["hello", "there"])
    assert command is None
    assert args == ["there"]
