from datetime import datetime, timezone

from fastapi import APIRouter

from skinvault.models.user import HealthResponse

router = APIRouter()

@router.get("", response_model=HealthResponse, summary="Health Check")
async def health():
    """Liveness probe; does not touch the store."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))
