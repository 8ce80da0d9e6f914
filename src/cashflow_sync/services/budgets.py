from cashflow_sync.domain.errors import CommandValidationError
from cashflow_sync.domain.periods import is_month_key
from cashflow_sync.integration.supabase import SupabaseClient
from cashflow_sync.logger import get_logger
from cashflow_sync.models import Budget, CategoryType
from cashflow_sync.services.ledger import require_positive
from cashflow_sync.services.resolver import NameResolver

logger = get_logger(__name__)

BUDGETS_TABLE = "budgets"
# One budget per account and month; a later /set_budget replaces it.
BUDGET_CONFLICT_COLUMNS = "account_id,month_year"


class BudgetPlanner:
    def __init__(self, store: SupabaseClient, resolver: NameResolver) -> None:
        self.store = store
        self.resolver = resolver

    async def set_budget(
        self,
        account_id: str,
        category_name: str,
        amount: float,
        month: str,
    ) -> Budget:
        amount = require_positive(amount, "amount")
        if not is_month_key(month):
            raise CommandValidationError("month", "Invalid month format. Use YYYY-MM (e.g., 2024-12).")

        category = await self.resolver.resolve_category(account_id, category_name, CategoryType.expense)
        budget = Budget(
            account_id=account_id,
            category_id=category.id,
            amount=amount,
            month_year=month,
        )
        row = await self.store.upsert(
            BUDGETS_TABLE,
            budget.model_dump(mode="json", exclude_none=True),
            on_conflict=BUDGET_CONFLICT_COLUMNS,
        )
        logger.info(
            "[BUDGET] %.2f set for '%s' in %s (account %s).",
            amount,
            category.name,
            month,
            account_id,
        )
        return Budget.model_validate(row)
