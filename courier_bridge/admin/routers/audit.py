"""
Admin webhook audit log.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.deps import AdminUser, page_context, require_admin
from courier_bridge.admin.templates_cfg import templates
from courier_bridge.database import get_db
from courier_bridge.models import WebhookEvent

router = APIRouter()

_PAGE_SIZE = 50


@router.get("/admin/audit", response_class=HTMLResponse)
async def audit_log(
    request: Request,
    page: int = 1,
    source: Optional[str] = None,
    failed: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
) -> HTMLResponse:
    page = max(1, page)
    stmt = select(WebhookEvent)
    if source:
        stmt = stmt.where(WebhookEvent.source == source)
    if failed:
        stmt = stmt.where(WebhookEvent.success.is_(False))

    events = (
        await db.execute(
            stmt.order_by(WebhookEvent.created_at.desc(), WebhookEvent.id.desc())
            .offset((page - 1) * _PAGE_SIZE)
            .limit(_PAGE_SIZE)
        )
    ).scalars().all()

    return templates.TemplateResponse(
        request,
        "audit.html",
        page_context(
            request,
            current_user,
            "audit",
            events=events,
            page=page,
            page_size=_PAGE_SIZE,
            source=source or "",
            failed=failed,
        ),
    )
