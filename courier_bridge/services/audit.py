"""
Webhook audit log writer. Entries are added to the caller's session and
committed with it.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.models import WebhookEvent


def record_event(
    session: AsyncSession,
    *,
    source: str,
    event_name: str,
    company_id: Optional[str] = None,
    shipment_id: Optional[str] = None,
    status: Optional[str] = None,
    success: bool = True,
    message: Optional[str] = None,
) -> WebhookEvent:
    event = WebhookEvent(
        source=source,
        event_name=event_name,
        company_id=str(company_id) if company_id is not None else None,
        shipment_id=shipment_id,
        status=status,
        success=success,
        message=(message or "")[:1000] or None,
    )
    session.add(event)
    return event
