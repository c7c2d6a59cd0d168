"""
Per-tenant courier configuration resource.

GET    /api/configurations
GET    /api/configurations/{fynd_company_id}
POST   /api/configurations
PUT    /api/configurations/{fynd_company_id}
POST   /api/configurations/upsert
DELETE /api/configurations/{fynd_company_id}
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.database import get_db
from courier_bridge.errors import BridgeError
from courier_bridge.schemas import ConfigurationCreate, ConfigurationUpdate
from courier_bridge.services import configurations

router = APIRouter(prefix="/api/configurations", tags=["configurations"])


def _not_found() -> BridgeError:
    return BridgeError(404, "Configuration not found")


@router.get("")
async def list_configurations(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    rows = await configurations.get_all(db)
    return {
        "success": True,
        "count": len(rows),
        "data": [configurations.to_dict(r) for r in rows],
    }


@router.post("/upsert")
async def upsert_configuration(
    payload: ConfigurationCreate,
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    action, row = await configurations.upsert(db, payload)
    return {
        "success": True,
        "message": f"Configuration {action} successfully",
        "data": {**configurations.to_dict(row), "action": action},
    }


@router.get("/{fynd_company_id}")
async def get_configuration(
    fynd_company_id: str, db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    row = await configurations.get_by_company_id(db, fynd_company_id)
    if row is None:
        raise _not_found()
    return {"success": True, "data": configurations.to_dict(row)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_configuration(
    payload: ConfigurationCreate,
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    row = await configurations.create(db, payload)
    return {
        "success": True,
        "message": "Configuration created successfully",
        "data": configurations.to_dict(row),
    }


@router.put("/{fynd_company_id}")
async def update_configuration(
    fynd_company_id: str,
    payload: ConfigurationUpdate,
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    row = await configurations.update(db, fynd_company_id, payload)
    if row is None:
        raise _not_found()
    return {
        "success": True,
        "message": "Configuration updated successfully",
        "data": configurations.to_dict(row),
    }


@router.delete("/{fynd_company_id}")
async def delete_configuration(
    fynd_company_id: str, db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    deleted = await configurations.delete_by_company_id(db, fynd_company_id)
    if not deleted:
        raise _not_found()
    return {"success": True, "message": "Configuration deleted successfully"}
