"""
Checkout rates: quote courier service plans for a storefront cart using the
tenant's collection address and shipment defaults.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.errors import BridgeError
from courier_bridge.models import Configuration
from courier_bridge.services import bobgo_client, configurations
from courier_bridge.services.address import normalize_address, prepare_delivery_address

logger = logging.getLogger(__name__)
settings = get_settings()


def collection_address(config: Configuration) -> Dict[str, Any]:
    return normalize_address(
        {
            "company": config.company_name or "Bob Go",
            "street_address": config.street_address or "",
            "local_area": config.local_area or "",
            "city": config.city or "",
            "zone": config.zone or "",
            "country": config.country_code or config.country or "",
            "code": config.postal_code or settings.default_collection_code,
        }
    )


def build_rates_payload(
    config: Configuration,
    delivery_address: Dict[str, Any],
    items: List[Dict[str, Any]],
) -> Dict[str, Any]:
    return {
        "collection_address": collection_address(config),
        "delivery_address": prepare_delivery_address(delivery_address),
        "items": items,
        "declared_value": float(config.shipment_declared_value or 0),
        "handling_time": config.shipment_handling_time or 2,
    }


async def get_service_plan(
    session: AsyncSession,
    company_id: str,
    delivery_address: Dict[str, Any] | None,
    items: List[Dict[str, Any]] | None,
) -> Any:
    """
    Validate the storefront request, build the courier payload and return the
    courier's rate response. Raises BridgeError for every client-side problem.
    """
    if not delivery_address:
        raise BridgeError(400, "delivery_address is required in request body")
    if not items:
        raise BridgeError(400, "items array is required in request body")

    config = await configurations.get_by_company_id(session, company_id)
    if config is None:
        raise BridgeError(
            404,
            "Configuration not found for this company. Please configure your settings first.",
        )

    token = configurations.courier_token(config) or settings.bobgo_token
    if not token:
        raise BridgeError(
            400,
            "API token not configured. Please set delivery_partner_API_token in configuration.",
        )

    payload = build_rates_payload(config, delivery_address, items)
    logger.info(
        "Quoting rates company=%s items=%d delivery_zone=%s",
        company_id, len(items), payload["delivery_address"].get("zone"),
    )
    return await bobgo_client.rates_at_checkout(config.delivery_partner_url, token, payload)
