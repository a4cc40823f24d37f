from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["utils"])


@router.get("/health")
async def health_check() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
