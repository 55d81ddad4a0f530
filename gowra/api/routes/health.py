from fastapi import APIRouter
from typing import Dict

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=Dict[str, str])
async def health_check():
    """
    Liveness probe. Does not touch the database or Redis.

    Returns:
        Dict with status and a short message
    """
    return {"status": "ok", "message": "Gowra Events API is running"}
