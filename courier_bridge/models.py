"""
SQLAlchemy ORM models: tenant configuration, shipment bookkeeping, platform
sessions, webhook audit log and admin users.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _now() -> datetime:
    return datetime.now(timezone.utc)


# SQLite only auto-increments INTEGER primary keys
_BigId = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


class Configuration(Base):
    """Courier settings for one platform company (tenant)."""
    __tablename__ = "configurations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    fynd_company_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    street_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    local_area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    zone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(255), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    delivery_partner_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_partner_api_token_encrypted: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    default_tat: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    shipment_declared_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=0
    )
    shipment_handling_time: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class Shipment(Base):
    """Forward shipment as seen by both systems, keyed by platform order id."""
    __tablename__ = "shipments"

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    company_id: Mapped[str] = mapped_column(String(255), nullable=False)
    fynd_order_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    fynd_shipment_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    bobgo_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fynd_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    courier_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    courier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    awb_no: Mapped[str | None] = mapped_column(String(255), nullable=True)
    track_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    dp_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    pdf_media: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    fulfillment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class ReturnRecord(Base):
    """Return shipment, keyed by the platform's return shipment id."""
    __tablename__ = "returns"

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    company_id: Mapped[str] = mapped_column(String(255), nullable=False)
    fynd_return_shipment_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    fynd_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fynd_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    courier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    awb_no: Mapped[str | None] = mapped_column(String(255), nullable=True)
    track_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    dp_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    pdf_media: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class PlatformSession(Base):
    """Offline OAuth session for one company (tokens stored encrypted)."""
    __tablename__ = "platform_sessions"

    company_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False)   # 'courier' | 'platform'
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )


# ── Admin UI models ──────────────────────────────────────────────────────────

class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[str] = mapped_column(
        Text, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
