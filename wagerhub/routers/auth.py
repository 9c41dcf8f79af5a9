import asyncio
from typing import Optional

import orjson
from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from wagerhub.config import settings
from wagerhub.core.exceptions import AccountNotFound
from wagerhub.core.logger import get_logger
from wagerhub.core.models import Account, Identity
from wagerhub.core.settlement import SettlementPipeline

logger = get_logger("auth")

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit.enabled)

router = APIRouter()


def get_pipeline(request: Request) -> SettlementPipeline:
    return request.app.state.pipeline


def bearer_token(request: Request) -> Optional[str]:
    """Extract the credential from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


async def get_current_identity(request: Request) -> Identity:
    """Verify the caller; raises AuthError on a missing or bad token."""
    provider = get_pipeline(request).identity_provider
    return await asyncio.to_thread(provider.verify, bearer_token(request))


async def get_current_account(request: Request) -> Account:
    identity = await get_current_identity(request)
    account = await asyncio.to_thread(get_pipeline(request).ledger.find_account, identity.subject_id)
    if account is None:
        raise AccountNotFound()
    return account


async def _json_body(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/user")
@limiter.limit(settings.rate_limit.api_requests)
async def create_or_get_user(request: Request):
    """Provision the caller's account on first login; later calls return it unchanged."""
    identity = await get_current_identity(request)
    body = await _json_body(request)

    account, created = await asyncio.to_thread(
        get_pipeline(request).ledger.open_account,
        identity,
        body.get("email"),
        body.get("displayName"),
    )
    if created:
        logger.info("New account provisioned", extra={"subject_id": identity.subject_id})
    return account.to_dict()


@router.get("/user/profile")
@limiter.limit(settings.rate_limit.api_requests)
async def get_profile(request: Request):
    account = await get_current_account(request)
    return account.to_dict()
