"""
Webhook receivers.

POST /fulfillment/created     courier fulfillment callback
POST /tracking/updated        courier tracking callback
POST /api/webhook-events      platform shipment / courier-partner events
"""
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.database import get_db
from courier_bridge.deps import verify_platform_signature, verify_webhook
from courier_bridge.errors import BridgeError
from courier_bridge.schemas import CourierWebhookPayload
from courier_bridge.services import audit, relay, shipments

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["webhooks"])

EventHandler = Callable[[AsyncSession, str, Dict[str, Any], str], Awaitable[Dict[str, Any]]]

EVENT_HANDLERS: Dict[str, EventHandler] = {
    "application/shipment/create": shipments.handle_shipment_create,
    "application/shipment/update": shipments.handle_shipment_update,
    "application/courier-partner/assign": shipments.handle_courier_assign,
    "application/courier-partner/cancel": shipments.handle_courier_cancel,
}


def _parse_json(body: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(body or b"{}")
    except ValueError:
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    if not isinstance(data, dict):
        raise BridgeError(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    return data


def _courier_payload(body: bytes) -> CourierWebhookPayload:
    try:
        return CourierWebhookPayload(**_parse_json(body))
    except ValidationError as exc:
        raise BridgeError(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid webhook payload",
            exc.errors(include_url=False, include_context=False),
        )


# ── Courier callbacks ─────────────────────────────────────────────────────────

@router.post("/fulfillment/created")
async def fulfillment_created(
    body: bytes = Depends(verify_webhook),
    company_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    return await relay.process_courier_webhook(
        db, _courier_payload(body), "fulfillment_created", company_id
    )


@router.post("/tracking/updated")
async def tracking_updated(
    body: bytes = Depends(verify_webhook),
    company_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    return await relay.process_courier_webhook(
        db, _courier_payload(body), "tracking_updated", company_id
    )


# ── Platform events ───────────────────────────────────────────────────────────

def event_key(data: Dict[str, Any]) -> Optional[str]:
    """``{"event": {"category", "name", "type"}}`` or a flat ``"event"`` string."""
    event = data.get("event")
    if isinstance(event, str):
        return event
    if isinstance(event, dict) and event.get("name") and event.get("type"):
        category = event.get("category") or "application"
        return f"{category}/{event['name']}/{event['type']}"
    return None


@router.post("/api/webhook-events")
async def platform_event(
    body: bytes = Depends(verify_platform_signature),
    company_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    data = _parse_json(body)
    key = event_key(data)
    company = str(data.get("company_id") or company_id or settings.default_company_id)
    handler = EVENT_HANDLERS.get(key or "")

    if handler is None:
        logger.info("Ignoring platform event %s", key)
        return {"success": True}

    shipment = shipments.shipment_of(data)
    shipment_id = shipment.get("shipment_id") or shipment.get("id")
    try:
        result = await handler(db, key, data, company)
    except Exception as exc:
        logger.exception("Platform event %s failed for company %s", key, company)
        await db.rollback()
        audit.record_event(
            db,
            source="platform",
            event_name=key,
            company_id=company,
            shipment_id=str(shipment_id) if shipment_id else None,
            status=shipments.status_of(shipment),
            success=False,
            message=str(exc),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False},
        )

    audit.record_event(
        db,
        source="platform",
        event_name=key,
        company_id=company,
        shipment_id=str(shipment_id) if shipment_id else None,
        status=shipments.status_of(shipment),
        success=bool(result.get("success", True)),
        message=result.get("message"),
    )
    return {"success": True}
