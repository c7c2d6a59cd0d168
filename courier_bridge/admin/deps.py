"""
Admin page dependencies. A missing or stale login raises AdminNotAuthenticated,
which the app turns into a redirect to the login page.
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.auth import logout_session, pop_flash, session_user_id
from courier_bridge.database import get_db
from courier_bridge.models import AdminUser


class AdminNotAuthenticated(Exception):
    pass


async def require_admin(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    user_id = session_user_id(request)
    if not user_id:
        raise AdminNotAuthenticated()

    user = await db.get(AdminUser, user_id)
    if user is None or not user.is_active:
        logout_session(request)
        raise AdminNotAuthenticated()
    return user


def page_context(request: Request, user: AdminUser, active: str, **extra: Any) -> Dict[str, Any]:
    """Template context every admin page shares."""
    return {
        "flash": pop_flash(request),
        "active": active,
        "user": user,
        **extra,
    }
