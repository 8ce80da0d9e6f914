from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from cashflow_sync.api.dependencies import get_aggregation, require_api_key
from cashflow_sync.domain.errors import PersistenceError
from cashflow_sync.domain.periods import ALL_MONTHS, is_all_scope, is_month_key
from cashflow_sync.models import CategoryShare, MonthlySummary, MonthlyTotal
from cashflow_sync.services.aggregation import AggregationEngine

router = APIRouter(
    prefix="/api/accounts/{account_id}",
    dependencies=[Depends(require_api_key)],
)


def _validated_month(month: str | None) -> str | None:
    if month is None:
        return None
    if is_all_scope(month):
        return ALL_MONTHS
    if not is_month_key(month):
        raise HTTPException(status_code=400, detail="month must be YYYY-MM or 'all'")
    return month


@router.get("/summary", response_model=MonthlySummary)
async def account_summary(
    account_id: str,
    aggregation: Annotated[AggregationEngine, Depends(get_aggregation)],
    month: str | None = None,
) -> MonthlySummary:
    try:
        return await aggregation.monthly_summary(account_id, _validated_month(month))
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail="Store unavailable") from exc


@router.get("/breakdown", response_model=list[CategoryShare])
async def account_breakdown(
    account_id: str,
    aggregation: Annotated[AggregationEngine, Depends(get_aggregation)],
    month: str | None = None,
) -> list[CategoryShare]:
    try:
        return await aggregation.category_breakdown_for(account_id, _validated_month(month))
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail="Store unavailable") from exc


@router.get("/trend", response_model=list[MonthlyTotal])
async def account_trend(
    account_id: str,
    aggregation: Annotated[AggregationEngine, Depends(get_aggregation)],
) -> list[MonthlyTotal]:
    try:
        return await aggregation.monthly_trend_for(account_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail="Store unavailable") from exc
