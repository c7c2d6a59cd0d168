"""
FastAPI dependency utilities: webhook signature verification, tenant headers,
platform client lookup.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging

from fastapi import Depends, Header, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.database import get_db
from courier_bridge.errors import BridgeError, NoPlatformSession
from courier_bridge.services.platform_client import PlatformClient
from courier_bridge.services.platform_sessions import get_platform_client

logger = logging.getLogger(__name__)
settings = get_settings()


async def verify_webhook(
    request: Request,
    x_webhook_signature: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> bytes:
    """
    Verify courier webhook authenticity via Bearer token or HMAC-SHA256
    (base64 in X-Webhook-Signature). Returns the raw request body so routers
    don't need to re-read it.
    """
    body = await request.body()

    # ── Option 1: Bearer token ───────────────────────────────────────────────
    if settings.webhook_bearer_token:
        if authorization and authorization.startswith("Bearer "):
            token = authorization.removeprefix("Bearer ").strip()
            if hmac.compare_digest(token, settings.webhook_bearer_token):
                return body
        raise BridgeError(status.HTTP_401_UNAUTHORIZED, "Invalid or missing Bearer token")

    # ── Option 2: HMAC SHA256 ────────────────────────────────────────────────
    if not settings.webhook_shared_secret:
        return body

    if not x_webhook_signature:
        raise BridgeError(status.HTTP_401_UNAUTHORIZED, "Missing X-Webhook-Signature header")

    expected = hmac.new(
        key=settings.webhook_shared_secret.encode(),
        msg=body,
        digestmod=hashlib.sha256,
    ).digest()

    try:
        provided = base64.b64decode(x_webhook_signature, validate=True)
    except (binascii.Error, ValueError):
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "Malformed signature header")

    if not hmac.compare_digest(expected, provided):
        raise BridgeError(status.HTTP_401_UNAUTHORIZED, "Webhook signature mismatch")

    return body


async def verify_platform_signature(
    request: Request,
    x_fp_signature: str | None = Header(default=None),
) -> bytes:
    """Platform events are signed with the extension secret (hex HMAC-SHA256)."""
    body = await request.body()
    if not settings.extension_api_secret:
        return body

    if not x_fp_signature:
        raise BridgeError(status.HTTP_401_UNAUTHORIZED, "Missing x-fp-signature header")

    expected = hmac.new(
        key=settings.extension_api_secret.encode(),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(expected, x_fp_signature.strip().lower()):
        logger.warning("Platform event signature mismatch")
        raise BridgeError(status.HTTP_401_UNAUTHORIZED, "Webhook signature mismatch")
    return body


async def company_id(
    x_company_id: str | None = Header(default=None),
    company_id: str | None = Query(default=None),
) -> str:
    """Tenant id from the ``x-company-id`` header or ``company_id`` query."""
    value = x_company_id or company_id
    if not value:
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "Company ID is required in header")
    return value


async def platform_client(
    company: str = Depends(company_id),
    db: AsyncSession = Depends(get_db),
) -> PlatformClient:
    client = await get_platform_client(db, company)
    if client is None:
        raise NoPlatformSession(company)
    return client
