"""
Shipping charge on a storefront cart, applied as a platform price adjustment.

Applying a plan is an idempotent upsert: any shipping adjustment already on
the cart (ours or a generic delivery charge) is removed before the new one is
added, so re-selecting a plan never stacks charges.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from courier_bridge.errors import PlatformAPIError
from courier_bridge.schemas import ServicePlan
from courier_bridge.services.platform_client import PlatformClient

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_SHIPPING_TYPES = ("delivery_charge", "charge")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _items_of(response: Any) -> List[Dict[str, Any]]:
    if not isinstance(response, dict):
        return []
    data = response.get("data")
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    if isinstance(data, list):
        return data
    items = response.get("items")
    return items if isinstance(items, list) else []


def is_shipping_adjustment(adjustment: Dict[str, Any], extension_id: str) -> bool:
    message = (adjustment.get("message") or "").lower()
    meta = adjustment.get("meta") or {}
    return (
        adjustment.get("type") in _SHIPPING_TYPES
        or "shipping" in message
        or "delivery" in message
        or meta.get("extension_id") == extension_id
    )


def article_id_for(item: Dict[str, Any]) -> Optional[str]:
    """Article id of a cart item, trying the places the cart API puts it."""
    article = item.get("article") or {}
    identifier = article.get("identifier") or {}
    identifiers = item.get("identifiers") or {}
    key = item.get("key") or ""
    # key format: "<article id>_<size>_<delivery>"
    candidate = (
        article.get("uid")
        or identifier.get("upc")
        or identifiers.get("identifier")
        or (key.split("_")[0] if key else None)
    )
    return str(candidate) if candidate else None


def distribute_charge(cart_items: List[Dict[str, Any]], value: float) -> List[Dict[str, Any]]:
    """
    Split *value* equally over the cart's articles, rounded to cents, with the
    last article absorbing the rounding remainder. Falls back to a single
    ``ALL`` article when no article ids can be found.
    """
    total = _cents(Decimal(str(value)))
    if not cart_items:
        return [{"article_id": "ALL", "value": float(total)}]

    share = _cents(total / len(cart_items))
    distributed: List[Dict[str, Any]] = []
    for index, item in enumerate(cart_items):
        article_id = article_id_for(item)
        if article_id is None:
            logger.warning("Could not extract article_id for cart item %d", index)
            continue
        distributed.append({"article_id": article_id, "value": share})

    if not distributed:
        logger.warning("No article ids extracted, using 'ALL' fallback")
        return [{"article_id": "ALL", "value": float(total)}]

    remainder = total - sum(entry["value"] for entry in distributed)
    if remainder:
        distributed[-1]["value"] = _cents(distributed[-1]["value"] + remainder)

    return [
        {"article_id": entry["article_id"], "value": float(entry["value"])}
        for entry in distributed
    ]


def build_adjustment_payload(
    cart_id: str,
    plan: ServicePlan,
    article_ids: List[Dict[str, Any]],
    extension_id: str,
) -> Dict[str, Any]:
    return {
        "cart_id": cart_id,
        "value": float(plan.rate or 0),
        "is_authenticated": True,
        "message": plan.name or "Shipping Charge",
        "type": "delivery_charge",
        "article_level_distribution": True,
        "collection": {"collected_by": "FYND", "refund_by": "FYND"},
        "article_ids": article_ids,
        "allowed_refund": True,
        "meta": {
            "extension_id": extension_id,
            "service_plan_id": plan.id,
            "service_code": plan.service_code,
        },
        "restrictions": {
            "post_order": {"cancellation_allowed": True, "return_allowed": True}
        },
    }


async def _remove_existing(client: PlatformClient, application_id: str, cart_id: str) -> int:
    try:
        existing = await client.get_price_adjustments(application_id, cart_id)
    except PlatformAPIError as exc:
        logger.info("Could not fetch existing adjustments for cart=%s: %s", cart_id, exc.message)
        return 0

    removed = 0
    for adjustment in _items_of(existing):
        if not adjustment.get("id") or not is_shipping_adjustment(adjustment, client.extension_id):
            continue
        try:
            await client.remove_price_adjustment(application_id, str(adjustment["id"]))
            removed += 1
            logger.info("Removed shipping adjustment %s from cart=%s", adjustment["id"], cart_id)
        except PlatformAPIError as exc:
            logger.warning("Failed to delete adjustment %s: %s", adjustment["id"], exc.message)
    return removed


async def _fetch_cart(client: PlatformClient, application_id: str, cart_id: str) -> Optional[Dict[str, Any]]:
    try:
        cart = await client.get_cart(application_id, cart_id, breakup=True)
    except PlatformAPIError as exc:
        logger.warning("Could not fetch cart=%s: %s", cart_id, exc.message)
        return None
    return cart if isinstance(cart, dict) else None


async def update_cart_shipping(
    client: PlatformClient,
    application_id: str,
    cart_id: str,
    plan: ServicePlan,
) -> Dict[str, Any]:
    """Replace the cart's shipping charge with *plan*. Returns the response ``data``."""
    logger.info(
        "Updating cart shipping cart=%s plan=%s rate=%s %s",
        cart_id, plan.name or "Shipping", plan.rate, plan.currency,
    )
    await _remove_existing(client, application_id, cart_id)

    cart = await _fetch_cart(client, application_id, cart_id)
    cart_items = (cart or {}).get("items") or []
    article_ids = distribute_charge(cart_items, float(plan.rate or 0))

    payload = build_adjustment_payload(cart_id, plan, article_ids, client.extension_id)
    try:
        added = await client.add_price_adjustment(application_id, payload)
    except PlatformAPIError as exc:
        raise PlatformAPIError(
            exc.status_code, "Failed to add price adjustment", exc.error or exc.message
        ) from exc
    logger.info("Price adjustment added to cart=%s across %d articles", cart_id, len(article_ids))

    updated_cart = await _fetch_cart(client, application_id, cart_id)
    added_data = added.get("data", added) if isinstance(added, dict) else added

    return {
        "cart_id": (updated_cart or {}).get("cart_id") or (updated_cart or {}).get("id") or cart_id,
        "currency": (updated_cart or {}).get("currency")
        or {
            "code": plan.currency,
            "symbol": "R" if plan.currency == "ZAR" else plan.currency,
        },
        "service_plan": {
            "name": plan.name or "Shipping Charge",
            "rate": float(plan.rate or 0),
            "currency": plan.currency,
        },
        "adjustment_add_response": added_data,
        "_cart_data": updated_cart,
    }


async def list_adjustments(client: PlatformClient, application_id: str, cart_id: str) -> Any:
    response = await client.get_price_adjustments(application_id, cart_id)
    if isinstance(response, dict) and "data" in response:
        return response["data"]
    return response


async def remove_adjustment(client: PlatformClient, application_id: str, adjustment_id: str) -> None:
    await client.remove_price_adjustment(application_id, adjustment_id)
    logger.info("Price adjustment %s removed (application=%s)", adjustment_id, application_id)
