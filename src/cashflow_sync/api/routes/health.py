from datetime import datetime, timezone

from fastapi import APIRouter

from cashflow_sync.api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
