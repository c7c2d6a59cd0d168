"""
Storefront checkout endpoints.

POST   /api/checkout/getServicePlan
POST   /api/checkout/priceadjustment
GET    /api/checkout/priceadjustment?cart_id=
DELETE /api/checkout/priceadjustment/{adjustment_id}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.database import get_db
from courier_bridge.errors import BridgeError, NoPlatformSession
from courier_bridge.schemas import PriceAdjustmentRequest, ServicePlanRequest
from courier_bridge.services import checkout, price_adjustment
from courier_bridge.services.platform_client import PlatformClient
from courier_bridge.services.platform_sessions import get_platform_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


def _require_company(x_company_id: Optional[str], message: str) -> str:
    if not x_company_id:
        raise BridgeError(400, message)
    return x_company_id


async def _client_for(db: AsyncSession, company_id: str) -> PlatformClient:
    client = await get_platform_client(db, company_id)
    if client is None:
        raise NoPlatformSession(company_id)
    return client


@router.post("/getServicePlan")
async def get_service_plan(
    body: ServicePlanRequest,
    x_company_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    company_id = _require_company(
        x_company_id, "Company ID is required in x-company-id header"
    )
    data = await checkout.get_service_plan(db, company_id, body.delivery_address, body.items)
    return {"success": True, "data": data}


@router.post("/priceadjustment")
async def update_cart_shipping(
    body: PriceAdjustmentRequest,
    x_company_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    company_id = _require_company(
        x_company_id, "Company ID required in header (x-company-id)"
    )
    if not (body.cart_id and body.application_id and body.service_plan):
        raise BridgeError(400, "cart_id, application_id, and service_plan are required")
    if body.service_plan.rate is None or not body.service_plan.currency:
        raise BridgeError(400, "service_plan must contain 'rate' and 'currency'")

    client = await _client_for(db, company_id)
    data = await price_adjustment.update_cart_shipping(
        client, body.application_id, body.cart_id, body.service_plan
    )
    return {"success": True, "data": data}


@router.get("/priceadjustment")
async def get_price_adjustments(
    cart_id: Optional[str] = Query(default=None),
    application_id: Optional[str] = Query(default=None),
    x_company_id: Optional[str] = Header(default=None),
    x_application_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    company_id = _require_company(
        x_company_id, "Company ID required in header (x-company-id)"
    )
    app_id = x_application_id or application_id
    if not app_id:
        raise BridgeError(
            400, "Application ID required in header (x-application-id) or query param"
        )
    if not cart_id:
        raise BridgeError(400, "cart_id query parameter is required")

    client = await _client_for(db, company_id)
    data = await price_adjustment.list_adjustments(client, app_id, cart_id)
    return {"success": True, "data": data}


@router.delete("/priceadjustment/{adjustment_id}")
async def remove_price_adjustment(
    adjustment_id: str,
    application_id: Optional[str] = Query(default=None),
    x_company_id: Optional[str] = Header(default=None),
    x_application_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    company_id = _require_company(
        x_company_id, "Company ID required in header (x-company-id)"
    )
    app_id = x_application_id or application_id
    if not app_id:
        raise BridgeError(
            400, "Application ID required in header (x-application-id) or body"
        )

    client = await _client_for(db, company_id)
    await price_adjustment.remove_adjustment(client, app_id, adjustment_id)
    return {"success": True, "message": "Price adjustment removed successfully"}
