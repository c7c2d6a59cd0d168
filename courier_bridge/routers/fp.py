"""
Platform extension install / OAuth callback / uninstall.

GET  /fp/install     -> redirect to the platform consent screen
GET  /fp/auth        -> exchange the code, store the session, launch the UI
POST /fp/uninstall   -> drop the company's stored session
"""
from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.database import get_db
from courier_bridge.deps import verify_platform_signature
from courier_bridge.errors import BridgeError
from courier_bridge.services import platform_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fp", tags=["platform-auth"])

_STATE_KEY = "fp_oauth_state"


@router.get("/install")
async def install(
    request: Request,
    company_id: str = Query(...),
    application_id: Optional[str] = Query(default=None),
) -> RedirectResponse:
    state = secrets.token_urlsafe(16)
    request.session[_STATE_KEY] = state
    logger.info("Extension install started for company=%s", company_id)
    return RedirectResponse(
        url=platform_sessions.authorize_url(company_id, state, application_id),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/auth")
async def auth_callback(
    request: Request,
    code: str = Query(...),
    company_id: str = Query(...),
    state: Optional[str] = Query(default=None),
    application_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    expected = request.session.pop(_STATE_KEY, None)
    if expected and state != expected:
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "OAuth state mismatch")

    token = await platform_sessions.exchange_code(company_id, code)
    await platform_sessions.save_session(db, company_id, token)
    logger.info("Extension authorised for company=%s", company_id)
    return RedirectResponse(
        url=platform_sessions.launch_url(company_id, application_id),
        status_code=status.HTTP_302_FOUND,
    )


@router.post("/uninstall")
async def uninstall(
    body: bytes = Depends(verify_platform_signature),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    try:
        data = json.loads(body or b"{}")
    except ValueError:
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    company_id = data.get("company_id") if isinstance(data, dict) else None
    if not company_id:
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "company_id is required")

    removed = await platform_sessions.delete_session(db, str(company_id))
    logger.info("Extension uninstalled for company=%s (session removed=%s)", company_id, removed)
    return {"success": True}
