"""
Courier -> platform status relay for Bob Go fulfillment and tracking callbacks.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.errors import BridgeError, NoPlatformSession, PlatformAPIError
from courier_bridge.schemas import CourierWebhookPayload
from courier_bridge.services import audit, shipments
from courier_bridge.services.platform_sessions import get_platform_client
from courier_bridge.services.status_mapping import (
    build_status_update,
    extract_shipment_id,
    map_courier_status,
    reason_text,
)

logger = logging.getLogger(__name__)
settings = get_settings()


async def resolve_company_id(
    session: AsyncSession, shipment_id: str, hint: Optional[str] = None
) -> str:
    """Tracked shipment first, then the ``company_id`` the webhook was registered with."""
    row = await shipments.get_by_shipment_id(session, shipment_id)
    if row is not None:
        return row.company_id
    return hint or settings.default_company_id


async def process_courier_webhook(
    session: AsyncSession,
    webhook: CourierWebhookPayload,
    event_name: str,
    company_hint: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Push the platform status matching a courier callback.

    Raises BridgeError(400) without a shipment id and NoPlatformSession when
    the company never authorised the extension. A rejected status push is
    audited and reported with success False.
    """
    shipment_id = extract_shipment_id(webhook)
    if not shipment_id:
        logger.warning("Courier %s webhook without channel_order_number", event_name)
        raise BridgeError(400, "No shipment ID found in webhook")

    courier_status = webhook.method_status or webhook.status
    company_id = await resolve_company_id(session, shipment_id, company_hint)
    logger.info(
        "Courier %s webhook shipment=%s status=%s company=%s",
        event_name, shipment_id, courier_status, company_id,
    )

    client = await get_platform_client(session, company_id)
    if client is None:
        raise NoPlatformSession(company_id)

    platform_status = map_courier_status(webhook)
    if platform_status is None:
        audit.record_event(
            session,
            source="courier",
            event_name=event_name,
            company_id=company_id,
            shipment_id=shipment_id,
            status=courier_status,
            success=False,
            message="No status mapping found",
        )
        return {
            "success": False,
            "message": "No status mapping found",
            "bobGoStatus": courier_status,
        }

    body = build_status_update(shipment_id, platform_status, reason_text(webhook))
    try:
        await client.update_shipment_status(body)
    except PlatformAPIError as exc:
        logger.error(
            "Status push failed for shipment %s (%s): %s", shipment_id, platform_status, exc.message
        )
        audit.record_event(
            session,
            source="courier",
            event_name=event_name,
            company_id=company_id,
            shipment_id=shipment_id,
            status=platform_status,
            success=False,
            message=exc.message,
        )
        return {
            "success": False,
            "message": exc.message,
            "shipmentId": shipment_id,
            "bobGoStatus": courier_status,
        }
    logger.info("Shipment %s moved to %s", shipment_id, platform_status)

    row = await shipments.get_by_shipment_id(session, shipment_id)
    if row is not None:
        row.courier_status = courier_status
        row.fynd_status = platform_status
        if webhook.id is not None and event_name == "fulfillment_created":
            row.fulfillment_id = row.fulfillment_id or str(webhook.id)
        session.add(row)

    audit.record_event(
        session,
        source="courier",
        event_name=event_name,
        company_id=company_id,
        shipment_id=shipment_id,
        status=platform_status,
        message=f"{courier_status} -> {platform_status}",
    )

    return {
        "success": True,
        "message": "Shipment status updated successfully",
        "shipmentId": shipment_id,
        "fyndStatus": platform_status,
        "bobGoStatus": courier_status,
    }
