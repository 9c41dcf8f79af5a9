import asyncio
from typing import Optional

import orjson
from fastapi import APIRouter, Request

from wagerhub.config import settings
from wagerhub.core.logger import get_logger
from wagerhub.routers.auth import bearer_token, get_current_account, get_pipeline, limiter

logger = get_logger("api")

router = APIRouter()


def clamp_limit(limit: Optional[int]) -> int:
    """History page size: default when absent, clamped to 1..max_limit."""
    if limit is None:
        return settings.history.default_limit
    return max(1, min(limit, settings.history.max_limit))


# ==================== Health ====================

@router.get("/health")
@limiter.limit(settings.rate_limit.api_requests)
async def health(request: Request):
    return {"status": "ok", "name": settings.server.name}


# ==================== Game Endpoints ====================

@router.post("/game/result")
async def submit_game_result(request: Request):
    """
    Settle a claimed game result.
    Spacing between settlements is enforced per account by the pipeline's throttle.
    """
    body = await request.body()
    try:
        payload = orjson.loads(body) if body else None
    except orjson.JSONDecodeError:
        logger.debug("Game result body is not valid JSON")
        payload = None

    pipeline = get_pipeline(request)
    receipt = await asyncio.to_thread(pipeline.submit, bearer_token(request), payload)
    return receipt.to_dict()


@router.get("/game/history")
@limiter.limit(settings.rate_limit.api_requests)
async def game_history(request: Request, limit: Optional[int] = None):
    account = await get_current_account(request)
    history = get_pipeline(request).history
    records = await asyncio.to_thread(history.recent, account.id, clamp_limit(limit))
    return [record.to_dict() for record in records]


@router.get("/user/stats")
@limiter.limit(settings.rate_limit.api_requests)
async def user_stats(request: Request):
    account = await get_current_account(request)
    history = get_pipeline(request).history
    return await asyncio.to_thread(history.stats_for, account.id)
