"""
Admin login: password hashing, credential check, first-user bootstrap and
the session-cookie keys the admin pages share.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.models import AdminUser

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_USER_KEY = "admin_user_id"
_FLASH_KEY = "flash"


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return _pwd_context.verify(plain, hashed)


async def authenticate(
    session: AsyncSession, username: str, password: str
) -> Optional[AdminUser]:
    """The active user matching *username*/*password*, else None."""
    user = (
        await session.execute(select(AdminUser).where(AdminUser.username == username.strip()))
    ).scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        logger.warning("Failed admin login for %r", username)
        return None
    return user


async def bootstrap_admin(session: AsyncSession, username: str, password: str) -> bool:
    """Create the first admin user when the table is empty. Returns True if created."""
    count = (
        await session.execute(select(func.count()).select_from(AdminUser))
    ).scalar_one()
    if count:
        return False
    session.add(AdminUser(username=username, password_hash=hash_password(password)))
    await session.flush()
    logger.info("Bootstrap admin user '%s' created.", username)
    return True


# ── Session cookie ───────────────────────────────────────────────────────────

def login_session(request: Request, user: AdminUser) -> None:
    request.session[_USER_KEY] = user.id


def logout_session(request: Request) -> None:
    request.session.pop(_USER_KEY, None)


def session_user_id(request: Request) -> Optional[str]:
    return request.session.get(_USER_KEY)


def flash(request: Request, message: str, kind: str = "success") -> None:
    request.session[_FLASH_KEY] = {"message": message, "kind": kind}


def pop_flash(request: Request) -> Optional[dict]:
    return request.session.pop(_FLASH_KEY, None)
