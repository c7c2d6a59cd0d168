"""
Async client for the commerce platform REST API (order-manage, logistics and
cart services), scoped to one company and authenticated with that company's
offline OAuth token.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from courier_bridge.config import get_settings
from courier_bridge.errors import PlatformAPIError

logger = logging.getLogger(__name__)
settings = get_settings()

_TIMEOUT = httpx.Timeout(30.0)


class PlatformClient:
    def __init__(
        self,
        company_id: str,
        access_token: str,
        base_url: Optional[str] = None,
        extension_id: Optional[str] = None,
    ) -> None:
        self.company_id = str(company_id)
        self.access_token = access_token
        self.base_url = (base_url or settings.platform_base).rstrip("/")
        self.extension_id = extension_id or settings.extension_id

    # ── transport ────────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "x-company-id": self.company_id,
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
            try:
                resp = await client.request(
                    method, url, params=params, json=json, headers=self._headers()
                )
            except httpx.HTTPError as exc:
                logger.error("Platform request failed %s %s: %s", method, url, exc)
                raise PlatformAPIError(502, str(exc)) from exc

        if resp.is_success:
            return resp.json() if resp.content else {}

        try:
            detail: Any = resp.json()
        except ValueError:
            detail = resp.text[:300]
        logger.error(
            "Platform API error %s %s company=%s status=%d body=%s",
            method, path, self.company_id, resp.status_code, resp.text[:300],
        )
        raise PlatformAPIError(
            resp.status_code,
            f"Request failed with status code {resp.status_code}",
            detail,
        )

    @property
    def _order(self) -> str:
        return f"/service/platform/order-manage/v1.0/company/{self.company_id}"

    @property
    def _logistics(self) -> str:
        return f"/service/platform/logistics/v2.0/company/{self.company_id}"

    def _cart(self, application_id: str) -> str:
        return (
            f"/service/platform/cart/v1.0/company/{self.company_id}"
            f"/application/{application_id}"
        )

    # ── order ────────────────────────────────────────────────────────────────

    async def update_shipment_status(self, body: Dict[str, Any]) -> Any:
        return await self._request("PUT", f"{self._order}/shipment/status-internal", json=body)

    async def update_shipment_tracking(self, body: Dict[str, Any]) -> Any:
        return await self._request("POST", f"{self._order}/tracking", json=body)

    # ── logistics / serviceability ───────────────────────────────────────────

    async def get_courier_partner_schemes(self, scheme_type: str = "global") -> Any:
        return await self._request(
            "GET",
            f"{self._logistics}/courier-partner/scheme",
            params={"scheme_type": scheme_type},
        )

    async def create_courier_partner_scheme(self, body: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"{self._logistics}/courier-partner/scheme", json=body
        )

    async def update_courier_partner_scheme(
        self, scheme_id: str, body: Dict[str, Any]
    ) -> Any:
        return await self._request(
            "PUT", f"{self._logistics}/courier-partner/scheme/{scheme_id}", json=body
        )

    async def get_countries(self, onboarding: bool = True, q: Optional[str] = None) -> Any:
        return await self._request(
            "GET",
            f"{self._logistics}/countries",
            params={"onboarding": str(onboarding).lower(), "q": q},
        )

    async def sample_file_serviceability(self, body: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"{self._logistics}/localities/bulk-sample", json=body
        )

    async def get_sample_file_serviceability_status(self, batch_id: Optional[str]) -> Any:
        return await self._request(
            "GET",
            f"{self._logistics}/localities/bulk-sample",
            params={"batch_id": batch_id},
        )

    def _scheme_path(self, scheme_id: str) -> str:
        return (
            f"{self._logistics}/courier-partner/{self.extension_id}"
            f"/scheme/{scheme_id}"
        )

    async def bulk_serviceability(self, scheme_id: str, body: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"{self._scheme_path(scheme_id)}/serviceability/bulk", json=body
        )

    async def get_bulk_serviceability(self, scheme_id: str, **params: Any) -> Any:
        return await self._request(
            "GET", f"{self._scheme_path(scheme_id)}/serviceability/bulk", params=params
        )

    async def bulk_tat(self, scheme_id: str, body: Dict[str, Any]) -> Any:
        return await self._request("POST", f"{self._scheme_path(scheme_id)}/tat", json=body)

    async def get_bulk_tat(self, scheme_id: str, **params: Any) -> Any:
        return await self._request("GET", f"{self._scheme_path(scheme_id)}/tat", params=params)

    async def create_courier_partner_account(self, body: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"{self._logistics}/courier-partner/account", json=body
        )

    # ── cart ─────────────────────────────────────────────────────────────────

    async def get_price_adjustments(self, application_id: str, cart_id: str) -> Any:
        return await self._request(
            "GET",
            f"{self._cart(application_id)}/price-adjustment",
            params={"cart_id": cart_id},
        )

    async def add_price_adjustment(self, application_id: str, body: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"{self._cart(application_id)}/price-adjustment", json=body
        )

    async def remove_price_adjustment(self, application_id: str, adjustment_id: str) -> Any:
        return await self._request(
            "DELETE", f"{self._cart(application_id)}/price-adjustment/{adjustment_id}"
        )

    async def get_cart(self, application_id: str, cart_id: str, breakup: bool = True) -> Any:
        return await self._request(
            "GET",
            f"{self._cart(application_id)}/detail",
            params={"id": cart_id, "b": str(breakup).lower()},
        )
