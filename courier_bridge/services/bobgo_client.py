"""
Thin Bob Go courier REST API client (no SDK dependency).
Uses a per-tenant API token taken from the configuration row.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from courier_bridge.config import get_settings
from courier_bridge.errors import CourierAPIError

logger = logging.getLogger(__name__)
settings = get_settings()

_TIMEOUT = httpx.Timeout(30.0)


def _base(url: Optional[str]) -> str:
    return (url or settings.bobgo_default_url).rstrip("/")


def _error_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text[:300]


async def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Any:
    async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
        try:
            resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Bob Go request failed url=%s: %s", url, exc)
            raise CourierAPIError(502, str(exc)) from exc

    if resp.is_success:
        return resp.json() if resp.content else {}

    logger.error(
        "Bob Go API error url=%s status=%d body=%s",
        url, resp.status_code, resp.text[:300],
    )
    raise CourierAPIError(
        resp.status_code,
        f"Request failed with status code {resp.status_code}",
        _error_body(resp),
    )


async def rates_at_checkout(
    base_url: Optional[str], api_token: str, payload: Dict[str, Any]
) -> Any:
    """Quote service plans for a cart. Bob Go expects a lowercase 'bearer' here."""
    url = f"{_base(base_url)}/v2/rates-at-checkout"
    logger.info("Calling Bob Go rates-at-checkout: %s", url)
    return await _post(
        url,
        payload,
        {
            "Content-Type": "application/json",
            "Authorization": f"bearer {api_token}",
            "Accept": "*/*",
        },
    )


async def create_order(
    base_url: Optional[str], api_token: str, payload: Dict[str, Any]
) -> Any:
    """Create a courier order for a platform shipment."""
    if not api_token:
        raise CourierAPIError(400, "BobGo API token not configured")
    url = f"{_base(base_url)}/v2/orders"
    logger.info(
        "Creating Bob Go order channel_order_number=%s",
        payload.get("channel_order_number"),
    )
    return await _post(
        url,
        payload,
        {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_token}",
            "Accept": "*/*",
        },
    )
