"""
Admin configuration pages: list, create, edit, delete tenant courier settings.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from courier_bridge.admin.auth import flash
from courier_bridge.admin.deps import AdminUser, page_context, require_admin
from courier_bridge.admin.templates_cfg import templates
from courier_bridge.database import get_db
from courier_bridge.errors import BridgeError
from courier_bridge.models import Configuration
from courier_bridge.schemas import ConfigurationCreate, ConfigurationUpdate
from courier_bridge.services import configurations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/configurations")

_TEXT_FIELDS = (
    "company_name",
    "street_address",
    "local_area",
    "city",
    "zone",
    "country",
    "country_code",
    "postal_code",
    "delivery_partner_url",
)


def _redirect_to_list() -> RedirectResponse:
    return RedirectResponse(url="/admin/configurations", status_code=status.HTTP_303_SEE_OTHER)


def _parse_form(form: Any) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Form fields -> schema kwargs. Blank inputs are left out."""
    data: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for field in _TEXT_FIELDS:
        value = (form.get(field) or "").strip()
        if value:
            data[field] = value

    token = (form.get("delivery_partner_api_token") or "").strip()
    if token:
        data["delivery_partner_api_token"] = token

    for field, cast in (("shipment_declared_value", float), ("shipment_handling_time", int)):
        raw = (form.get(field) or "").strip()
        if not raw:
            continue
        try:
            data[field] = cast(raw)
        except ValueError:
            errors[field] = "Must be a number."

    raw_tat = (form.get("default_tat") or "").strip()
    if raw_tat:
        try:
            data["default_tat"] = json.loads(raw_tat)
        except ValueError:
            errors["default_tat"] = "Must be valid JSON."

    return data, errors


def _validation_messages(exc: ValidationError) -> Dict[str, str]:
    return {
        str(err["loc"][0]) if err.get("loc") else "form": err["msg"]
        for err in exc.errors()
    }


def _render_form(
    request: Request,
    user: AdminUser,
    config: Configuration | None,
    form: Dict[str, Any],
    errors: Dict[str, str],
    status_code: int = 200,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "configurations/form.html",
        page_context(
            request,
            user,
            "configurations",
            config=config,
            token_hint=configurations.courier_token(config) if config else "",
            form=form,
            errors=errors,
        ),
        status_code=status_code,
    )


@router.get("", response_class=HTMLResponse)
async def configurations_list(
    request: Request,
    q: str = "",
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
) -> HTMLResponse:
    stmt = select(Configuration).order_by(Configuration.created_at.desc())
    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                Configuration.fynd_company_id.ilike(like),
                Configuration.company_name.ilike(like),
                Configuration.city.ilike(like),
            )
        )
    rows = (await db.execute(stmt)).scalars().all()
    return templates.TemplateResponse(
        request,
        "configurations/list.html",
        page_context(request, current_user, "configurations", configs=rows, q=q),
    )


@router.get("/new", response_class=HTMLResponse)
async def configurations_new(
    request: Request,
    current_user: AdminUser = Depends(require_admin),
) -> HTMLResponse:
    return _render_form(request, current_user, None, {}, {})


@router.post("", response_class=HTMLResponse)
async def configurations_create(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
):
    form = await request.form()
    data, errors = _parse_form(form)
    company_id = (form.get("fynd_company_id") or "").strip()
    if not company_id:
        errors["fynd_company_id"] = "Company ID is required."

    payload = None
    if not errors:
        try:
            payload = ConfigurationCreate(fynd_company_id=company_id, **data)
        except ValidationError as exc:
            errors.update(_validation_messages(exc))

    if payload is not None and await configurations.get_by_company_id(db, company_id):
        errors["fynd_company_id"] = f"Company '{company_id}' already has a configuration."

    if errors or payload is None:
        return _render_form(
            request, current_user, None, dict(form), errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        await configurations.create(db, payload)
    except BridgeError as exc:
        return _render_form(
            request, current_user, None, dict(form), {"fynd_company_id": exc.message},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    await db.commit()

    flash(request, f"Configuration for company '{company_id}' added.")
    return _redirect_to_list()


@router.get("/{fynd_company_id}/edit", response_class=HTMLResponse)
async def configurations_edit(
    fynd_company_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
):
    config = await configurations.get_by_company_id(db, fynd_company_id)
    if config is None:
        flash(request, "Configuration not found.", "error")
        return _redirect_to_list()
    return _render_form(request, current_user, config, {}, {})


@router.post("/{fynd_company_id}")
async def configurations_update(
    fynd_company_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
):
    config = await configurations.get_by_company_id(db, fynd_company_id)
    if config is None:
        flash(request, "Configuration not found.", "error")
        return _redirect_to_list()

    form = await request.form()
    data, errors = _parse_form(form)
    payload = None
    if not errors:
        try:
            payload = ConfigurationUpdate(**data)
        except ValidationError as exc:
            errors.update(_validation_messages(exc))

    if errors or payload is None:
        return _render_form(
            request, current_user, config, dict(form), errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    # A blank token field keeps the stored token
    await configurations.update(db, fynd_company_id, payload)
    await db.commit()

    flash(request, f"Configuration for company '{fynd_company_id}' updated.")
    return _redirect_to_list()


@router.post("/{fynd_company_id}/delete")
async def configurations_delete(
    fynd_company_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AdminUser = Depends(require_admin),
) -> RedirectResponse:
    deleted = await configurations.delete_by_company_id(db, fynd_company_id)
    if deleted:
        await db.commit()
        flash(request, f"Configuration for company '{fynd_company_id}' deleted.")
    else:
        flash(request, "Configuration not found.", "error")
    return _redirect_to_list()
