"""
Platform shipment events: courier order booking and local shipment/return
bookkeeping.

Every step is best-effort. Failures are logged and the next step still runs,
so the platform never sees a failed delivery because one write went wrong.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.errors import BridgeError
from courier_bridge.models import ReturnRecord, Shipment
from courier_bridge.services import bobgo_client, configurations
from courier_bridge.services.platform_sessions import get_platform_client

logger = logging.getLogger(__name__)
settings = get_settings()

READY_FOR_COURIER = "ready_for_dp_assignment"

FORWARD_SHIPMENT_STATUSES = (
    "placed",
    "bag_confirmed",
    "bag_invoiced",
    "ready_for_dp_assignment",
    "dp_assigned",
    "bag_packed",
    "bag_picked",
    "in_transit",
    "out_for_delivery",
    "delivery_attempt_failed",
    "delivery_done",
    "cancelled_customer",
    "cancelled_fynd",
)

RETURN_TRACKING_STATUSES = (
    "return_dp_assigned",
    "return_bag_picked",
    "return_bag_delivered",
)


# ── Payload helpers ──────────────────────────────────────────────────────────

def shipment_of(payload: Dict[str, Any]) -> Dict[str, Any]:
    """The shipment dict from an event body (``payload.shipment`` or ``shipment``)."""
    inner = payload.get("payload") or {}
    return inner.get("shipment") or payload.get("shipment") or {}


def status_of(shipment: Dict[str, Any]) -> Optional[str]:
    nested = shipment.get("shipment_status")
    if isinstance(nested, dict) and nested.get("status"):
        return nested["status"]
    return shipment.get("status")


def pdf_media_map(media: List[Dict[str, Any]]) -> Dict[str, str]:
    """``[{"type": "label", "url": ...}, ...]`` -> ``{"label": ...}``."""
    result: Dict[str, str] = {}
    for entry in media:
        if not isinstance(entry, dict):
            continue
        kind = entry.get("type") or entry.get("media_type")
        url = entry.get("url") or entry.get("link")
        if kind and url:
            result[str(kind)] = url
    return result


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split(" ")
    return (parts[0] if parts else ""), " ".join(parts[1:])


def transform_shipment_to_courier_order(shipment: Dict[str, Any]) -> Dict[str, Any]:
    """Platform shipment -> Bob Go ``POST /v2/orders`` body."""
    if not shipment:
        raise BridgeError(400, "Invalid shipment data structure")

    user = shipment.get("user") or {}
    address = shipment.get("delivery_address") or {}
    bags = shipment.get("bags") or []

    if user.get("is_anonymous_user") is True:
        # Guest checkout: the delivery address is all we know about the buyer
        first, last = _split_name(address.get("name") or address.get("contact_person") or "")
        customer = {
            "customer_name": first,
            "customer_surname": last,
            "customer_email": address.get("email") or "",
            "customer_phone": address.get("phone") or "",
        }
    else:
        customer = {
            "customer_name": user.get("first_name") or user.get("name") or "",
            "customer_surname": user.get("last_name") or "",
            "customer_email": user.get("email") or "",
            "customer_phone": user.get("phone") or user.get("mobile") or "",
        }

    total_weight = (shipment.get("weight") or {}).get("weight") or 0
    order_items = []
    for bag in bags:
        item = bag.get("item") or {}
        order_items.append(
            {
                "description": item.get("name") or bag.get("item_name") or "Product",
                "vendor": (item.get("brand") or {}).get("name") or "",
                "sku": item.get("code") or item.get("seller_identifier") or "",
                "unit_price": (bag.get("prices") or {}).get("price_effective") or 0,
                "qty": bag.get("quantity") or 1,
                "unit_weight_kg": (total_weight / len(bags)) or 0.1,
            }
        )

    return {
        "channel_order_number": shipment.get("shipment_id"),
        **customer,
        "currency": settings.default_currency,
        "buyer_selected_shipping_cost": (shipment.get("prices") or {}).get("delivery_charge") or 0,
        "buyer_selected_shipping_method": (
            (shipment.get("delivery_partner_details") or {}).get("name") or "Standard Shipping"
        ),
        "delivery_address": {
            "company": address.get("name") or "",
            "street_address": address.get("address") or address.get("address1") or "",
            "local_area": address.get("area") or address.get("address2") or "",
            "city": address.get("city") or "",
            "zone": address.get("state") or "",
            "country": address.get("country_iso_code") or "ZA",
            "code": address.get("pincode") or address.get("zip") or "",
        },
        "order_items": order_items,
        "payment_status": (
            "unpaid" if (shipment.get("payment_methods") or {}).get("mode") == "COD" else "paid"
        ),
    }


def build_invoice_update(shipment_id: str, invoice_id: str, status: str = "bag_invoiced") -> Dict[str, Any]:
    return {
        "statuses": [
            {
                "shipments": [
                    {
                        "identifier": shipment_id,
                        "invoice": {"store_invoice_id": invoice_id},
                        "data_updates": {},
                    }
                ],
                "status": status,
                "exclude_bags_next_state": "",
                "split_shipment": False,
            }
        ],
        "task": False,
        "force_transition": False,
        "lock_after_transition": False,
        "unlock_before_transition": False,
        "resume_tasks_after_unlock": False,
    }


# ── Local records ────────────────────────────────────────────────────────────

async def get_by_order_id(session: AsyncSession, order_id: str) -> Optional[Shipment]:
    return (
        await session.execute(select(Shipment).where(Shipment.fynd_order_id == str(order_id)))
    ).scalar_one_or_none()


async def get_by_shipment_id(session: AsyncSession, shipment_id: str) -> Optional[Shipment]:
    return (
        await session.execute(
            select(Shipment).where(Shipment.fynd_shipment_id == str(shipment_id))
        )
    ).scalars().first()


async def get_return(session: AsyncSession, return_shipment_id: str) -> Optional[ReturnRecord]:
    return (
        await session.execute(
            select(ReturnRecord).where(
                ReturnRecord.fynd_return_shipment_id == str(return_shipment_id)
            )
        )
    ).scalar_one_or_none()


async def get_or_create_shipment(
    session: AsyncSession,
    company_id: str,
    order_id: Optional[str],
    shipment_id: Optional[str],
) -> Shipment:
    key = str(order_id or shipment_id)
    row = await get_by_order_id(session, key)
    if row is None:
        row = Shipment(company_id=str(company_id), fynd_order_id=key)
        session.add(row)
        logger.info("Tracking new shipment order=%s shipment=%s", key, shipment_id)
    if shipment_id and not row.fynd_shipment_id:
        row.fynd_shipment_id = str(shipment_id)
    await session.flush()
    return row


async def get_or_create_return(
    session: AsyncSession, company_id: str, return_shipment_id: str, order_id: Optional[str]
) -> ReturnRecord:
    row = await get_return(session, return_shipment_id)
    if row is None:
        row = ReturnRecord(
            company_id=str(company_id),
            fynd_return_shipment_id=str(return_shipment_id),
            fynd_order_id=str(order_id) if order_id else None,
        )
        session.add(row)
        await session.flush()
        logger.info("Tracking new return shipment=%s order=%s", return_shipment_id, order_id)
    return row


def _apply_dp_details(row: Shipment | ReturnRecord, dp_details: Dict[str, Any]) -> None:
    row.dp_details = dict(dp_details)
    row.track_url = dp_details.get("track_url") or row.track_url
    row.awb_no = dp_details.get("awb_no") or row.awb_no
    row.courier_name = (
        dp_details.get("name") or dp_details.get("courier_partner_slug") or row.courier_name
    )


def _merge_pdf_media(row: Shipment | ReturnRecord, media: List[Dict[str, Any]]) -> None:
    merged = dict(row.pdf_media or {})
    merged.update(pdf_media_map(media))
    row.pdf_media = merged


# ── Courier booking ──────────────────────────────────────────────────────────

async def create_courier_order(
    session: AsyncSession, company_id: str, shipment: Dict[str, Any]
) -> Optional[Any]:
    """
    Book the shipment with the courier and remember the courier order id.
    Returns the courier response, or None when the company is not configured.
    """
    config = await configurations.get_by_company_id(session, company_id)
    if config is None:
        logger.error(
            "No configuration found for company %s – configure it before shipping", company_id
        )
        return None

    body = transform_shipment_to_courier_order(shipment)
    token = configurations.courier_token(config) or settings.bobgo_token or ""
    response = await bobgo_client.create_order(config.delivery_partner_url, token, body)

    courier_order_id = None
    if isinstance(response, dict):
        courier_order_id = response.get("order_id") or response.get("id")

    row = await get_or_create_shipment(
        session, company_id, shipment.get("order_id"), shipment.get("shipment_id")
    )
    if courier_order_id is not None:
        row.bobgo_order_id = str(courier_order_id)
    row.fynd_status = status_of(shipment) or row.fynd_status
    session.add(row)
    await session.flush()

    logger.info(
        "Courier order created shipment=%s courier_order=%s",
        shipment.get("shipment_id"), courier_order_id,
    )
    return response


# ── Event handlers ───────────────────────────────────────────────────────────

async def handle_shipment_create(
    session: AsyncSession, event_name: str, payload: Dict[str, Any], company_id: str
) -> Dict[str, Any]:
    shipment = shipment_of(payload)
    shipment_id = shipment.get("shipment_id") or shipment.get("id")
    order_id = shipment.get("order_id") or payload.get("order_id")
    if not (shipment_id or order_id):
        logger.warning("Shipment create event without shipment/order id: %s", event_name)
        return {"success": False, "message": "No shipment id in payload"}

    row = await get_or_create_shipment(session, company_id, order_id, shipment_id)
    row.fynd_status = status_of(shipment) or row.fynd_status
    session.add(row)
    return {"success": True, "message": "Shipment recorded"}


async def _sync_forward_status(
    session: AsyncSession, order_id: str, status: str, shipment_id: Optional[str]
) -> Optional[Shipment]:
    row = await get_by_order_id(session, order_id)
    if row is None:
        logger.debug("Shipment not tracked for order=%s (status %s)", order_id, status)
        return None
    row.fynd_status = status
    if status in ("bag_confirmed", "dp_assigned") and shipment_id:
        row.fynd_shipment_id = str(shipment_id)
    session.add(row)
    logger.info("Synced platform status order=%s status=%s", order_id, status)
    return row


async def _push_invoice_id(
    session: AsyncSession, company_id: str, shipment_id: str, row: Optional[Shipment]
) -> None:
    if row is None:
        logger.warning("Shipment %s not tracked locally – no invoice id to push", shipment_id)
        return
    invoice_id = row.fulfillment_id or row.bobgo_order_id
    if not invoice_id:
        logger.warning(
            "No fulfillment or courier order id for shipment %s – skipping invoice update",
            shipment_id,
        )
        return
    client = await get_platform_client(session, company_id)
    if client is None:
        return
    await client.update_shipment_status(build_invoice_update(shipment_id, invoice_id))
    logger.info("Invoice id %s pushed for shipment %s", invoice_id, shipment_id)


async def handle_shipment_update(
    session: AsyncSession, event_name: str, payload: Dict[str, Any], company_id: str
) -> Dict[str, Any]:
    shipment = shipment_of(payload)
    shipment_id = shipment.get("shipment_id") or shipment.get("id")
    order_id = shipment.get("order_id") or payload.get("order_id")
    company_id = str(payload.get("company_id") or company_id)
    status = status_of(shipment)

    logger.info(
        "Shipment update event=%s shipment=%s order=%s status=%s company=%s",
        event_name, shipment_id, order_id, status, company_id,
    )

    result: Dict[str, Any] = {"success": True, "message": "Shipment update event processed"}

    if status == READY_FOR_COURIER:
        try:
            response = await create_courier_order(session, company_id, shipment)
            result["courier_order"] = response
        except BridgeError as exc:
            logger.error("Courier order creation failed for shipment %s: %s", shipment_id, exc.message)
            result["courier_error"] = exc.message

    row: Optional[Shipment] = None
    if status and order_id and status in FORWARD_SHIPMENT_STATUSES:
        row = await _sync_forward_status(session, str(order_id), status, shipment_id)

    if status == "bag_confirmed" and shipment_id:
        try:
            await _push_invoice_id(session, company_id, str(shipment_id), row)
        except BridgeError as exc:
            logger.error("Invoice update failed for shipment %s: %s", shipment_id, exc.message)

    dp_details = shipment.get("dp_details") or shipment.get("delivery_partner_details")

    if status == "dp_assigned":
        if not dp_details:
            logger.warning("No dp_details in dp_assigned update for shipment %s", shipment_id)
        elif row is None:
            logger.warning("Shipment not tracked for order=%s – dp_details dropped", order_id)
        else:
            dp_details = dict(dp_details)
            if not dp_details.get("track_url"):
                bags = shipment.get("bags") or []
                fallback = ((bags[0] or {}).get("meta") or {}).get("tracking_url") if bags else None
                if fallback:
                    dp_details["track_url"] = fallback
            _apply_dp_details(row, dp_details)
            session.add(row)
            logger.info(
                "Stored dp_details for order=%s courier=%s awb=%s",
                order_id, row.courier_name, row.awb_no,
            )

    elif status in RETURN_TRACKING_STATUSES and shipment_id:
        return_row = await get_or_create_return(session, company_id, str(shipment_id), order_id)
        return_row.fynd_status = status
        if dp_details:
            _apply_dp_details(return_row, dp_details)
        else:
            logger.warning("No dp_details in %s update for return %s", status, shipment_id)
        session.add(return_row)

    pdf_media = ((shipment.get("affiliate_details") or {}).get("shipment_meta") or {}).get("pdf_media")
    if pdf_media and isinstance(pdf_media, list) and status:
        if status == "return_dp_assigned" and shipment_id:
            return_row = await get_or_create_return(session, company_id, str(shipment_id), order_id)
            _merge_pdf_media(return_row, pdf_media)
            session.add(return_row)
            logger.info("Stored %d pdf_media entries on return %s", len(pdf_media), shipment_id)
        elif "return" not in status and order_id:
            target = row or await get_by_order_id(session, str(order_id))
            if target is None:
                logger.warning("Shipment not tracked for order=%s – pdf_media dropped", order_id)
            else:
                _merge_pdf_media(target, pdf_media)
                session.add(target)
                logger.info("Stored %d pdf_media entries on order %s", len(pdf_media), order_id)

    await session.flush()
    return result


async def handle_courier_assign(
    session: AsyncSession, event_name: str, payload: Dict[str, Any], company_id: str
) -> Dict[str, Any]:
    """Platform asks us to allocate a courier: book it unless already booked."""
    shipment = shipment_of(payload)
    shipment_id = shipment.get("shipment_id") or shipment.get("id")
    order_id = shipment.get("order_id") or payload.get("order_id")
    if not shipment_id:
        return {"success": False, "message": "No shipment id in payload"}

    existing = None
    if order_id:
        existing = await get_by_order_id(session, str(order_id))
    if existing is None:
        existing = await get_by_shipment_id(session, str(shipment_id))
    if existing is not None and existing.bobgo_order_id:
        logger.info(
            "Shipment %s already booked as courier order %s", shipment_id, existing.bobgo_order_id
        )
        return {"success": True, "message": "Courier order already exists"}

    response = await create_courier_order(session, company_id, shipment)
    if response is None:
        return {"success": False, "message": "Company is not configured"}
    return {"success": True, "message": "Courier order created"}


async def handle_courier_cancel(
    session: AsyncSession, event_name: str, payload: Dict[str, Any], company_id: str
) -> Dict[str, Any]:
    shipment = shipment_of(payload)
    shipment_id = shipment.get("shipment_id") or shipment.get("id")
    order_id = shipment.get("order_id") or payload.get("order_id")

    row = None
    if order_id:
        row = await get_by_order_id(session, str(order_id))
    if row is None and shipment_id:
        row = await get_by_shipment_id(session, str(shipment_id))
    if row is None:
        logger.warning("Cancel for untracked shipment=%s order=%s", shipment_id, order_id)
        return {"success": False, "message": "Shipment not tracked"}

    row.fynd_status = "cancelled"
    session.add(row)
    logger.info("Shipment %s marked cancelled", row.fynd_shipment_id or row.fynd_order_id)
    return {"success": True, "message": "Shipment cancelled"}
