import pytest

from cashflow_sync.domain.errors import NotFoundError
from cashflow_sync.models import CategoryType
from cashflow_sync.services.resolver import NameResolver, earliest_created, suggest_name

from conftest import InMemoryStore


def _seed_duplicate_categories(store: InMemoryStore) -> None:
    store.add(
        "categories",
        id="cat-b",
        account_id="acc-1",
        name="Food",
        category_type="expense",
        is_active=True,
        created_at="2024-03-01T00:00:00+00:00",
    )
    store.add(
        "categories",
        id="cat-a",
        account_id="acc-1",
        name="Food",
        category_type="expense",
        is_active=True,
        created_at="2024-01-01T00:00:00+00:00",
    )


@pytest.mark.anyio
async def test_duplicate_names_resolve_to_earliest_created_regardless_of_store_order() -> None:
    for reverse in (False, True):
        store = InMemoryStore(reverse_results=reverse)
        _seed_duplicate_categories(store)

        category = await NameResolver(store).resolve_category("acc-1", "Food")

        assert category.id == "cat-a"


def test_earliest_created_breaks_timestamp_ties_by_id() -> None:
    rows = [
        {"id": "b", "created_at": "2024-01-01T00:00:00Z"},
        {"id": "a", "created_at": "2024-01-01T00:00:00Z"},
    ]
    assert earliest_created(rows)["id"] == "a"


@pytest.mark.anyio
async def test_inactive_and_wrong_type_categories_are_ignored(store, ledger_setup, resolver) -> None:
    store.add("categories", id="cat-old", account_id="acc-1", name="Travel", category_type="expense", is_active=False)

    with pytest.raises(NotFoundError) as excinfo:
        await resolver.resolve_category("acc-1", "Travel")
    assert excinfo.value.kind == "category"

    with pytest.raises(NotFoundError):
        await resolver.resolve_category("acc-1", "Stocks", CategoryType.expense)


@pytest.mark.anyio
async def test_category_from_other_account_is_not_visible(store, ledger_setup, resolver) -> None:
    store.add("categories", id="cat-x", account_id="acc-2", name="Rent", category_type="expense", is_active=True)

    with pytest.raises(NotFoundError):
        await resolver.resolve_category("acc-1", "Rent")


@pytest.mark.anyio
async def test_missing_category_carries_suggestion(ledger_setup, resolver) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        await resolver.resolve_category("acc-1", "food")

    assert excinfo.value.suggestion == "Food"


@pytest.mark.anyio
async def test_missing_card_without_close_match(ledger_setup, resolver) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        await resolver.resolve_card("acc-1", "Platinum Rewards")

    assert excinfo.value.kind == "card"
    assert excinfo.value.suggestion is None


@pytest.mark.anyio
async def test_default_stock_category(store, ledger_setup, resolver) -> None:
    store.add(
        "categories",
        id="cat-stocks-2",
        account_id="acc-1",
        name="Crypto",
        category_type="stock",
        is_active=True,
        created_at="2024-06-01T00:00:00+00:00",
    )

    category = await resolver.default_stock_category("acc-1")

    assert category.id == "cat-stocks"


@pytest.mark.anyio
async def test_default_stock_category_missing(store, account, resolver) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        await resolver.default_stock_category("acc-1")

    assert excinfo.value.kind == "default_stock_category"


@pytest.mark.anyio
async def test_list_names_are_sorted_and_unique(store, ledger_setup, resolver) -> None:
    store.add("categories", id="cat-c", account_id="acc-1", name="Bills", category_type="expense", is_active=True)
    store.add("categories", id="cat-d", account_id="acc-1", name="Food", category_type="expense", is_active=True)

    assert await resolver.list_categories("acc-1") == ["Bills", "Food"]
    assert await resolver.list_cards("acc-1") == ["Main"]


def test_suggest_name() -> None:
    assert suggest_name("groceri", ["Groceries", "Rent"]) == "Groceries"
    assert suggest_name("Zzz", ["Groceries", "Rent"]) is None
    assert suggest_name("Food", []) is None
