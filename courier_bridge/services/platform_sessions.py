"""
Platform OAuth sessions: authorise URL, code exchange, persistence and
on-demand refresh. ``get_platform_client`` is the single entry point the
rest of the service uses to talk to the platform on behalf of a company.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.crypto import decrypt, encrypt
from courier_bridge.config import get_settings
from courier_bridge.errors import PlatformAPIError
from courier_bridge.models import PlatformSession
from courier_bridge.services.platform_client import PlatformClient

logger = logging.getLogger(__name__)
settings = get_settings()

_TIMEOUT = httpx.Timeout(20.0)
_SCOPES = (
    "company/orders/read",
    "company/orders/write",
    "company/logistics/read",
    "company/logistics/write",
    "company/application/cart/read",
    "company/application/cart/write",
)
# Refresh a little before the platform says the token dies
_EXPIRY_SKEW = timedelta(seconds=60)


def _auth_base(company_id: str) -> str:
    return (
        f"{settings.platform_base}/service/panel/authentication/v1.0"
        f"/company/{company_id}/oauth"
    )


def authorize_url(company_id: str, state: str, application_id: Optional[str] = None) -> str:
    redirect_uri = f"{settings.extension_base_url.rstrip('/')}/fp/auth"
    params = {
        "client_id": settings.extension_api_key,
        "scope": ",".join(_SCOPES),
        "redirect_uri": redirect_uri,
        "state": state,
        "access_mode": "offline",
        "response_type": "code",
    }
    if application_id:
        params["application_id"] = application_id
    return f"{_auth_base(company_id)}/authorize?{urlencode(params)}"


def launch_url(company_id: str, application_id: Optional[str] = None) -> str:
    base = settings.extension_base_url.rstrip("/")
    if application_id:
        return f"{base}/company/{company_id}/application/{application_id}"
    return f"{base}/company/{company_id}"


async def _token_request(company_id: str, data: Dict[str, str]) -> Dict[str, Any]:
    url = f"{_auth_base(company_id)}/token"
    auth = httpx.BasicAuth(settings.extension_api_key, settings.extension_api_secret)
    async with httpx.AsyncClient(auth=auth, timeout=_TIMEOUT) as client:
        try:
            resp = await client.post(url, data=data)
        except httpx.HTTPError as exc:
            raise PlatformAPIError(502, str(exc)) from exc
    if not resp.is_success:
        logger.error(
            "Token request failed company=%s grant=%s status=%d body=%s",
            company_id, data.get("grant_type"), resp.status_code, resp.text[:300],
        )
        raise PlatformAPIError(resp.status_code, "Platform token request failed")
    return resp.json()


async def exchange_code(company_id: str, code: str) -> Dict[str, Any]:
    return await _token_request(
        company_id, {"grant_type": "authorization_code", "code": code}
    )


async def _refresh(company_id: str, refresh_token: str) -> Dict[str, Any]:
    return await _token_request(
        company_id, {"grant_type": "refresh_token", "refresh_token": refresh_token}
    )


async def save_session(
    session: AsyncSession, company_id: str, token: Dict[str, Any]
) -> PlatformSession:
    company_id = str(company_id)
    expires_in = token.get("expires_in")
    expires_at = (
        datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        if expires_in
        else None
    )
    row = await session.get(PlatformSession, company_id)
    if row is None:
        row = PlatformSession(company_id=company_id, access_token_encrypted="")
    row.access_token_encrypted = encrypt(token["access_token"])
    if token.get("refresh_token"):
        row.refresh_token_encrypted = encrypt(token["refresh_token"])
    row.expires_at = expires_at
    session.add(row)
    await session.flush()
    logger.info("Platform session stored for company=%s", company_id)
    return row


async def delete_session(session: AsyncSession, company_id: str) -> bool:
    row = await session.get(PlatformSession, str(company_id))
    if row is None:
        return False
    await session.delete(row)
    await session.flush()
    logger.info("Platform session removed for company=%s", company_id)
    return True


def _is_expired(row: PlatformSession) -> bool:
    if row.expires_at is None:
        return False
    expires_at = row.expires_at
    if expires_at.tzinfo is None:
        # SQLite drops tzinfo on the way back out
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at - _EXPIRY_SKEW <= datetime.now(timezone.utc)


async def get_platform_client(
    session: AsyncSession, company_id: str
) -> Optional[PlatformClient]:
    """
    Build a client for *company_id* from its stored session.
    Returns None when the company never authorised the extension or the
    token could not be refreshed.
    """
    row = await session.get(PlatformSession, str(company_id))
    if row is None:
        logger.warning("No platform session for company=%s", company_id)
        return None

    if _is_expired(row):
        refresh_token = decrypt(row.refresh_token_encrypted)
        if not refresh_token:
            logger.warning("Platform session expired for company=%s (no refresh token)", company_id)
            return None
        try:
            token = await _refresh(str(company_id), refresh_token)
        except PlatformAPIError as exc:
            logger.error("Token refresh failed for company=%s: %s", company_id, exc.message)
            return None
        row = await save_session(session, str(company_id), token)

    return PlatformClient(company_id=str(company_id), access_token=decrypt(row.access_token_encrypted))
