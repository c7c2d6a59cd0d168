"""
Pydantic schemas for request/response validation.

Wire names follow the admin front end (``delivery_partner_URL``,
``delivery_partner_API_token``); Python attributes are snake_case.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Configuration ────────────────────────────────────────────────────────────

class ConfigurationFields(BaseModel):
    company_name: Optional[str] = None
    street_address: Optional[str] = None
    local_area: Optional[str] = None
    city: Optional[str] = None
    zone: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    postal_code: Optional[str] = None
    delivery_partner_url: Optional[str] = Field(default=None, alias="delivery_partner_URL")
    delivery_partner_api_token: Optional[str] = Field(
        default=None, alias="delivery_partner_API_token"
    )
    default_tat: Optional[Union[Dict[str, Any], List[Any]]] = None
    shipment_declared_value: Optional[float] = Field(default=None, ge=0)
    shipment_handling_time: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConfigurationCreate(ConfigurationFields):
    fynd_company_id: str

    @field_validator("fynd_company_id", mode="before")
    @classmethod
    def _company_id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("fynd_company_id")
    @classmethod
    def _company_id_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("fynd_company_id is required")
        return v


class ConfigurationUpdate(ConfigurationFields):
    pass


# ── Checkout ─────────────────────────────────────────────────────────────────

class ServicePlanRequest(BaseModel):
    delivery_address: Optional[Dict[str, Any]] = None
    items: Optional[List[Dict[str, Any]]] = None


class ServicePlan(BaseModel):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    rate: Optional[float] = None
    currency: Optional[str] = None
    service_code: Optional[str] = None


class PriceAdjustmentRequest(BaseModel):
    cart_id: Optional[str] = None
    application_id: Optional[str] = None
    service_plan: Optional[ServicePlan] = None


# ── Webhook payloads ─────────────────────────────────────────────────────────

class CourierWebhookPayload(BaseModel):
    """Bob Go fulfillment / tracking callback. Unknown keys are kept."""
    id: Optional[Union[int, str]] = None
    order_id: Optional[Union[int, str]] = None
    status: Optional[str] = None
    method_status: Optional[str] = None
    channel_order_number: Optional[str] = None
    order: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("channel_order_number", mode="before")
    @classmethod
    def _channel_order_as_str(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


# ── Schemes ──────────────────────────────────────────────────────────────────

class SchemeCredentials(BaseModel):
    company_name: Optional[str] = None
    bobgo_token: Optional[str] = None


class SchemeSaveRequest(BaseModel):
    scheme_updates: Optional[Dict[str, Any]] = None
    credentials: Optional[SchemeCredentials] = None


# ── Admin / query responses ───────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str = "ok"
    db: str = "ok"
