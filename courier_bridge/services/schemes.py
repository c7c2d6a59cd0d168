"""
Courier partner schemes (service plans) owned by this extension.

The platform lists schemes of every courier extension; everything here is
filtered down to ``settings.extension_id``. Updates are full replacements on
the platform side, so ``build_scheme_payload`` merges the caller's partial
update over the current scheme and a set of defaults.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.config import get_settings
from courier_bridge.errors import BridgeError, NoPlatformSession
from courier_bridge.schemas import ConfigurationCreate, SchemeCredentials
from courier_bridge.services import configurations
from courier_bridge.services.platform_client import PlatformClient

logger = logging.getLogger(__name__)
settings = get_settings()

# Boolean flags are the only keys the platform accepts inside ``feature``
DEFAULT_FEATURES: Dict[str, bool] = {
    "doorstep_qc": False,
    "qr": False,
    "mps": False,
    "ndr": False,
    "dangerous_goods": False,
    "fragile_goods": False,
    "restricted_goods": False,
    "cold_storage_goods": False,
    "doorstep_exchange": False,
    "doorstep_return": False,
    "product_installation": False,
    "openbox_delivery": False,
    "multi_pick_single_drop": False,
    "single_pick_multi_drop": False,
    "multi_pick_multi_drop": False,
    "ewaybill": False,
}

# Scheme-level fields the UI sometimes nests under ``feature``
SCHEME_ONLY_FIELDS = (
    "ndr_attempts",
    "status_updates",
    "operation_scheme",
    "qc_shipment_item_quantity",
    "non_qc_shipment_item_quantity",
)

DEFAULT_WEIGHT = {"gt": 0.01, "lt": 100}
DEFAULT_VOLUMETRIC_WEIGHT = {"gt": 0.01, "lt": 1000}

NEW_SCHEME_DEFAULTS: Dict[str, Any] = {
    "weight": {"gt": 1, "lt": 10},
    "volumetric_weight": {"gt": 1, "lt": 10},
    "transport_type": "surface",
    "region": "intra-city",
    "delivery_type": "one-day",
    "payment_mode": ["COD", "PREPAID"],
    "stage": "enabled",
    "status_updates": "real-time",
    "ndr_attempts": 1,
    "qc_shipment_item_quantity": 1,
    "non_qc_shipment_item_quantity": 1,
}


def _first(*values: Any, default: Any = None) -> Any:
    """First value that is not None (``??`` chain)."""
    for value in values:
        if value is not None:
            return value
    return default


def build_feature_object(existing: Optional[Dict[str, Any]], updates: Optional[Dict[str, Any]]) -> Dict[str, bool]:
    merged = dict(DEFAULT_FEATURES)
    for source in (existing or {}, updates or {}):
        for key, value in source.items():
            if isinstance(value, bool) and key not in SCHEME_ONLY_FIELDS:
                merged[key] = value
    return merged


def convert_weight(
    update: Optional[Dict[str, Any]],
    current: Optional[Dict[str, Any]],
    default: Dict[str, Any],
) -> Dict[str, Any]:
    """UI ranges use ``gte``/``lte``; the platform wants ``gt``/``lt``."""
    weight = _first(update, current, default={})
    return {
        "gt": _first(weight.get("gte"), weight.get("gt"), default=default["gt"]),
        "lt": _first(weight.get("lte"), weight.get("lt"), default=default["lt"]),
    }


def _scheme_level(field: str, updates: Dict[str, Any], current: Dict[str, Any], default: Any) -> Any:
    upd_feature = updates.get("feature") or {}
    cur_feature = current.get("feature") or {}
    return _first(
        upd_feature.get(field),
        updates.get(field),
        cur_feature.get(field),
        current.get(field),
        default=default,
    )


def build_scheme_payload(
    scheme_id: str, updates: Dict[str, Any], current: Dict[str, Any]
) -> Dict[str, Any]:
    """Full platform scheme body: updates over current over defaults."""
    upd_feature = updates.get("feature") or {}
    cur_feature = current.get("feature") or {}
    upd_tat = updates.get("default_tat") or {}
    cur_tat = current.get("default_tat") or {}
    upd_tat_range = upd_tat.get("tat") or {}
    cur_tat_range = cur_tat.get("tat") or {}

    transport = updates.get("transport_type")
    payload: Dict[str, Any] = {
        "extension_id": settings.extension_id,
        "scheme_id": scheme_id,
        "name": _first(updates.get("name"), current.get("name"), default=""),
        "weight": convert_weight(updates.get("weight"), current.get("weight"), DEFAULT_WEIGHT),
        "volumetric_weight": convert_weight(
            updates.get("volumetric_weight"),
            current.get("volumetric_weight"),
            DEFAULT_VOLUMETRIC_WEIGHT,
        ),
        "transport_type": _first(
            transport.lower() if isinstance(transport, str) else None,
            current.get("transport_type"),
            default="surface",
        ),
        "region": _first(
            updates.get("region"),
            upd_feature.get("operation_scheme"),
            current.get("region"),
            cur_feature.get("operation_scheme"),
            default="intra-city",
        ),
        "delivery_type": _first(
            updates.get("delivery_type"), current.get("delivery_type"), default="one-day"
        ),
        "payment_mode": _first(
            updates.get("payment_mode"), current.get("payment_mode"), default=["COD", "PREPAID"]
        ),
        "stage": _first(updates.get("stage"), current.get("stage"), default="enabled"),
        "status_updates": _scheme_level("status_updates", updates, current, "real-time"),
        "ndr_attempts": _scheme_level("ndr_attempts", updates, current, 1),
        "qc_shipment_item_quantity": _scheme_level(
            "qc_shipment_item_quantity", updates, current, 1
        ),
        "non_qc_shipment_item_quantity": _scheme_level(
            "non_qc_shipment_item_quantity", updates, current, 1
        ),
        "default_tat": {
            "enabled": _first(upd_tat.get("enabled"), cur_tat.get("enabled"), default=False),
            "tat": {
                "min": _first(upd_tat_range.get("min"), cur_tat_range.get("min"), default=0),
                "max": _first(upd_tat_range.get("max"), cur_tat_range.get("max"), default=0),
                "unit": _first(
                    upd_tat_range.get("unit"), cur_tat_range.get("unit"), default="days"
                ),
            },
        },
        "feature": build_feature_object(cur_feature, upd_feature),
    }

    if updates.get("pickup_cutoff") or current.get("pickup_cutoff"):
        upd_cutoff = updates.get("pickup_cutoff") or {}
        cur_cutoff = current.get("pickup_cutoff") or {}
        payload["pickup_cutoff"] = {
            key: _first(upd_cutoff.get(key), cur_cutoff.get(key), default="")
            for key in ("forward", "reverse", "timezone")
        }

    return payload


def build_new_scheme(body: Dict[str, Any]) -> Dict[str, Any]:
    payload = {**NEW_SCHEME_DEFAULTS, **body}
    payload["extension_id"] = settings.extension_id
    payload["feature"] = build_feature_object(None, body.get("feature"))
    if not payload.get("scheme_id") or not payload.get("name"):
        raise BridgeError(400, "scheme_id and name are required")
    return payload


# ── Platform-backed operations ───────────────────────────────────────────────

def _own_schemes(response: Any) -> List[Dict[str, Any]]:
    items = (response or {}).get("items") if isinstance(response, dict) else None
    return [s for s in items or [] if s.get("extension_id") == settings.extension_id]


async def list_extension_schemes(client: PlatformClient) -> Dict[str, Any]:
    response = await client.get_courier_partner_schemes("global")
    own = _own_schemes(response)
    logger.info(
        "Schemes company=%s total=%d ours=%d",
        client.company_id, len((response or {}).get("items") or []), len(own),
    )
    return {
        **(response or {}),
        "company_id": client.company_id,
        "items": own,
        "page": {**((response or {}).get("page") or {}), "size": len(own), "item_total": len(own)},
    }


async def find_scheme(client: PlatformClient, scheme_id: str) -> Optional[Dict[str, Any]]:
    response = await client.get_courier_partner_schemes("global")
    for scheme in _own_schemes(response):
        if scheme.get("scheme_id") == scheme_id:
            return scheme
    return None


def webhook_url(company_id: str) -> str:
    base = settings.extension_base_url.rstrip("/")
    return f"{base}/fulfillment/created?company_id={company_id}"


async def get_scheme_with_credentials(
    session: AsyncSession, client: PlatformClient, scheme_id: str
) -> Dict[str, Any]:
    scheme = await find_scheme(client, scheme_id)
    if scheme is None:
        raise BridgeError(404, "Scheme not found or does not belong to this extension")

    config = await configurations.get_by_company_id(session, client.company_id)
    credentials = None
    if config is not None:
        credentials = {
            "company_name": config.company_name,
            "bobgo_token": configurations.courier_token(config),
            "webhook_url": webhook_url(client.company_id),
        }
    return {**scheme, "credentials": credentials}


async def save_credentials(
    session: AsyncSession, company_id: str, credentials: SchemeCredentials
) -> None:
    fields = {"company_name": credentials.company_name, "delivery_partner_API_token": credentials.bobgo_token}
    data = ConfigurationCreate(
        fynd_company_id=company_id,
        **{k: v for k, v in fields.items() if v is not None},
    )
    action, _ = await configurations.upsert(session, data)
    logger.info("Credentials %s for company %s", action, company_id)


async def save_scheme(
    session: AsyncSession,
    client: Optional[PlatformClient],
    company_id: str,
    scheme_id: str,
    scheme_updates: Optional[Dict[str, Any]],
    credentials: Optional[SchemeCredentials],
) -> Any:
    """Store credentials and/or push a merged scheme update."""
    if credentials is not None:
        await save_credentials(session, company_id, credentials)

    if not scheme_updates:
        return None

    if client is None:
        raise NoPlatformSession(company_id)

    current = await find_scheme(client, scheme_id)
    if current is None:
        raise BridgeError(404, "Scheme not found")

    payload = build_scheme_payload(scheme_id, scheme_updates, current)
    if not str(payload["name"]).strip():
        raise BridgeError(400, "Name is required and cannot be empty")

    logger.info("Updating scheme %s (%s)", scheme_id, payload["name"])
    return await client.update_courier_partner_scheme(scheme_id, payload)


async def create_scheme(client: PlatformClient, body: Dict[str, Any]) -> Any:
    payload = build_new_scheme(body)
    logger.info("Creating scheme %s (%s)", payload["scheme_id"], payload["name"])
    return await client.create_courier_partner_scheme(payload)
