"""
Operational endpoints.

GET /admin/health
GET /admin/shipments/{fynd_order_id}
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.deps import AdminUser, require_admin
from courier_bridge.database import get_db
from courier_bridge.errors import BridgeError
from courier_bridge.schemas import HealthResponse
from courier_bridge.services import shipments

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.error("DB health check failed: %s", exc)
        db_status = "error"
    return HealthResponse(status="ok", db=db_status)


@router.get("/shipments/{fynd_order_id}")
async def shipment_detail(
    fynd_order_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
) -> Dict[str, Any]:
    row = await shipments.get_by_order_id(db, fynd_order_id)
    if row is None:
        raise BridgeError(404, "Shipment not found")
    return {
        "success": True,
        "data": {
            "company_id": row.company_id,
            "fynd_order_id": row.fynd_order_id,
            "fynd_shipment_id": row.fynd_shipment_id,
            "bobgo_order_id": row.bobgo_order_id,
            "fynd_status": row.fynd_status,
            "courier_status": row.courier_status,
            "courier_name": row.courier_name,
            "awb_no": row.awb_no,
            "track_url": row.track_url,
            "pdf_media": row.pdf_media,
            "fulfillment_id": row.fulfillment_id,
        },
    }
