"""
Admin dashboard: configuration / shipment / webhook counts and recent events.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.deps import AdminUser, page_context, require_admin
from courier_bridge.admin.templates_cfg import templates
from courier_bridge.database import get_db
from courier_bridge.models import Configuration, PlatformSession, Shipment, WebhookEvent

router = APIRouter()


async def _count(db: AsyncSession, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return (await db.execute(stmt)).scalar_one()


@router.get("/admin", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
) -> HTMLResponse:
    stats = {
        "configurations": await _count(db, Configuration),
        "sessions": await _count(db, PlatformSession),
        "shipments": await _count(db, Shipment),
        "webhooks": await _count(db, WebhookEvent),
        "failed_webhooks": await _count(db, WebhookEvent, WebhookEvent.success.is_(False)),
    }

    recent_events = (
        await db.execute(
            select(WebhookEvent).order_by(WebhookEvent.created_at.desc()).limit(20)
        )
    ).scalars().all()

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        page_context(request, current_user, "dashboard", stats=stats, recent_events=recent_events),
    )
