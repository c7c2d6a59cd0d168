"""
Courier partner scheme management and logistics passthroughs.

GET  /apibasic/test_basic_route
GET  /apibasic/scheme/{scheme_id}
PUT  /apibasic/scheme/{scheme_id}
POST /apibasic/scheme
GET  /apibasic/countries
GET  /apibasic/sample_serv_file
GET  /apibasic/sample_tat_file
GET  /apibasic/sample_serv_tat_file_status
POST /apibasic/upload_scheme_servicability/{scheme_id}
POST /apibasic/upload_scheme_tat/{scheme_id}
GET  /apibasic/scheme_serviceability_history/{scheme_id}
GET  /apibasic/scheme_tat_history/{scheme_id}
POST /apibasic/create_seller_account
POST /apibasic/update_shipment_status
POST /apibasic/update_shipment_tracking
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.database import get_db
from courier_bridge.deps import company_id, platform_client
from courier_bridge.schemas import SchemeSaveRequest
from courier_bridge.services import schemes
from courier_bridge.services.platform_client import PlatformClient
from courier_bridge.services.platform_sessions import get_platform_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apibasic", tags=["schemes"])


@router.get("/test_basic_route")
async def list_schemes(client: PlatformClient = Depends(platform_client)) -> Dict[str, Any]:
    return await schemes.list_extension_schemes(client)


@router.get("/scheme/{scheme_id}")
async def get_scheme(
    scheme_id: str,
    client: PlatformClient = Depends(platform_client),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    data = await schemes.get_scheme_with_credentials(db, client, scheme_id)
    return {"success": True, "data": data}


@router.put("/scheme/{scheme_id}")
async def save_scheme(
    scheme_id: str,
    body: SchemeSaveRequest,
    company: str = Depends(company_id),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    # Credentials alone don't need a platform session
    client = await get_platform_client(db, company) if body.scheme_updates else None
    await schemes.save_scheme(
        db, client, company, scheme_id, body.scheme_updates, body.credentials
    )
    return {"success": True, "message": "Data saved successfully"}


@router.post("/scheme")
async def create_scheme(
    body: Optional[Dict[str, Any]] = Body(default=None),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await schemes.create_scheme(client, body or {})


@router.get("/countries")
async def countries(
    q: Optional[str] = Query(default=None),
    onboarding: bool = Query(default=True),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.get_countries(onboarding=onboarding, q=q)


@router.get("/sample_serv_file")
async def sample_serviceability_file(
    country: str = Query(default="INDIA"),
    region: str = Query(default="pincode"),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.sample_file_serviceability(
        {"country": country, "region": region, "type": "serviceability"}
    )


@router.get("/sample_tat_file")
async def sample_tat_file(
    country: str = Query(default="INDIA"),
    region: str = Query(default="city"),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.sample_file_serviceability(
        {"country": country, "region": region, "type": "tat"}
    )


@router.get("/sample_serv_tat_file_status")
async def sample_file_status(
    batch_id: Optional[str] = Query(default=None),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.get_sample_file_serviceability_status(batch_id)


@router.post("/upload_scheme_servicability/{scheme_id}")
async def upload_serviceability(
    scheme_id: str,
    body: Dict[str, Any] = Body(...),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.bulk_serviceability(scheme_id, {"action": "import", **body})


@router.post("/upload_scheme_tat/{scheme_id}")
async def upload_tat(
    scheme_id: str,
    body: Dict[str, Any] = Body(...),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.bulk_tat(scheme_id, {"action": "import", **body})


def _history_params(request: Request) -> Dict[str, Any]:
    skip = {"company_id"}
    return {k: v for k, v in request.query_params.items() if k not in skip}


@router.get("/scheme_serviceability_history/{scheme_id}")
async def serviceability_history(
    scheme_id: str,
    request: Request,
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.get_bulk_serviceability(scheme_id, **_history_params(request))


@router.get("/scheme_tat_history/{scheme_id}")
async def tat_history(
    scheme_id: str,
    request: Request,
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.get_bulk_tat(scheme_id, **_history_params(request))


@router.post("/create_seller_account")
async def create_seller_account(
    body: Dict[str, Any] = Body(...),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    payload = {
        "extension_id": client.extension_id,
        "is_self_ship": False,
        "stage": "enabled",
        "is_own_account": True,
        **body,
    }
    logger.info("Creating courier account %s", payload.get("account_id"))
    return await client.create_courier_partner_account(payload)


@router.post("/update_shipment_status")
async def update_shipment_status(
    body: Dict[str, Any] = Body(...),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.update_shipment_status(body)


@router.post("/update_shipment_tracking")
async def update_shipment_tracking(
    body: Dict[str, Any] = Body(...),
    client: PlatformClient = Depends(platform_client),
) -> Any:
    return await client.update_shipment_tracking(body)
