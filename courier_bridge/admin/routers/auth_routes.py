"""
Admin login / logout.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.auth import (
    authenticate,
    flash,
    login_session,
    logout_session,
    pop_flash,
)
from courier_bridge.admin.templates_cfg import templates
from courier_bridge.database import get_db

router = APIRouter(prefix="/admin")


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "login.html", {"flash": pop_flash(request)})


@router.post("/login")
async def login_submit(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    user = await authenticate(db, username, password)
    if user is None:
        flash(request, "Invalid username or password.", "error")
        return RedirectResponse(url="/admin/login", status_code=status.HTTP_303_SEE_OTHER)

    login_session(request, user)
    return RedirectResponse(url="/admin", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/logout")
async def logout(request: Request) -> RedirectResponse:
    logout_session(request)
    return RedirectResponse(url="/admin/login", status_code=status.HTTP_303_SEE_OTHER)
