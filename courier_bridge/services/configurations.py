"""
Per-tenant courier configuration store: one row per platform company.
Used by the REST resource, the admin UI, the scheme editor and every
outbound courier call.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.crypto import decrypt, encrypt
from courier_bridge.errors import BridgeError
from courier_bridge.models import Configuration
from courier_bridge.schemas import ConfigurationCreate, ConfigurationFields

logger = logging.getLogger(__name__)


def _apply_fields(row: Configuration, fields: Dict[str, Any]) -> None:
    for key, value in fields.items():
        if key == "delivery_partner_api_token":
            row.delivery_partner_api_token_encrypted = encrypt(value) if value else None
        elif key == "shipment_declared_value":
            row.shipment_declared_value = value if value is not None else 0
        elif key == "shipment_handling_time":
            row.shipment_handling_time = value if value is not None else 2
        elif key == "fynd_company_id":
            continue
        else:
            setattr(row, key, value)


def courier_token(row: Configuration) -> str:
    """Plaintext courier API token for a configuration row ('' if unset)."""
    return decrypt(row.delivery_partner_api_token_encrypted)


def to_dict(row: Configuration) -> Dict[str, Any]:
    """Serialise a row using the wire field names."""
    return {
        "id": row.id,
        "fynd_company_id": row.fynd_company_id,
        "company_name": row.company_name,
        "street_address": row.street_address,
        "local_area": row.local_area,
        "city": row.city,
        "zone": row.zone,
        "country": row.country,
        "country_code": row.country_code,
        "postal_code": row.postal_code,
        "delivery_partner_URL": row.delivery_partner_url,
        "delivery_partner_API_token": courier_token(row) or None,
        "default_tat": row.default_tat,
        "shipment_declared_value": float(row.shipment_declared_value or 0),
        "shipment_handling_time": row.shipment_handling_time,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


async def get_by_company_id(
    session: AsyncSession, fynd_company_id: str
) -> Optional[Configuration]:
    return (
        await session.execute(
            select(Configuration).where(
                Configuration.fynd_company_id == str(fynd_company_id)
            )
        )
    ).scalar_one_or_none()


async def get_all(session: AsyncSession) -> List[Configuration]:
    rows = (
        await session.execute(
            select(Configuration).order_by(
                Configuration.created_at.desc(), Configuration.id.desc()
            )
        )
    ).scalars().all()
    return list(rows)


async def create(session: AsyncSession, payload: ConfigurationCreate) -> Configuration:
    """Insert a new row. Raises BridgeError(409) if the company already has one."""
    row = Configuration(fynd_company_id=payload.fynd_company_id)
    _apply_fields(row, payload.model_dump(exclude={"fynd_company_id"}))
    session.add(row)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise BridgeError(
            409,
            f"Configuration for company {payload.fynd_company_id} already exists",
        )
    logger.info("Configuration created for company=%s", payload.fynd_company_id)
    return row


async def update(
    session: AsyncSession, fynd_company_id: str, payload: ConfigurationFields
) -> Optional[Configuration]:
    """Apply the supplied fields only. Returns None when no row matched."""
    row = await get_by_company_id(session, fynd_company_id)
    if row is None:
        return None
    _apply_fields(row, payload.model_dump(exclude_unset=True))
    row.updated_at = datetime.now(timezone.utc)
    session.add(row)
    await session.flush()
    logger.info("Configuration updated for company=%s", fynd_company_id)
    return row


async def upsert(
    session: AsyncSession, payload: ConfigurationCreate
) -> Tuple[str, Configuration]:
    """Create or update; returns ('created' | 'updated', row)."""
    existing = await get_by_company_id(session, payload.fynd_company_id)
    if existing is None:
        return "created", await create(session, payload)
    row = await update(session, payload.fynd_company_id, payload)
    return "updated", row


async def delete_by_company_id(session: AsyncSession, fynd_company_id: str) -> int:
    result = await session.execute(
        delete(Configuration).where(
            Configuration.fynd_company_id == str(fynd_company_id)
        )
    )
    if result.rowcount:
        logger.info("Configuration deleted for company=%s", fynd_company_id)
    return result.rowcount or 0
