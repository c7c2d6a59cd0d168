"""
Courier partner scheme editor and logistics passthroughs.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy import select

from conftest import COMPANY_ID, seed_configuration, seed_platform_session
from courier_bridge.errors import BridgeError, PlatformAPIError
from courier_bridge.models import Configuration
from courier_bridge.services import platform_client as platform_client_mod
from courier_bridge.services import schemes
from courier_bridge.services.platform_client import PlatformClient

CURRENT = {
    "extension_id": "test-extension",
    "scheme_id": "bobgo-economy",
    "name": "Bob Go Economy",
    "weight": {"gt": 0.5, "lt": 30},
    "transport_type": "surface",
    "region": "inter-city",
    "delivery_type": "two-days",
    "stage": "enabled",
    "ndr_attempts": 2,
    "default_tat": {"enabled": True, "tat": {"min": 2, "max": 4, "unit": "days"}},
    "feature": {"doorstep_qc": True, "operation_scheme": "inter-city"},
}

SCHEMES = {
    "items": [
        CURRENT,
        {"extension_id": "someone-else", "scheme_id": "other", "name": "Other"},
    ],
    "page": {"type": "number", "current": 1, "size": 2, "item_total": 2},
}


# ── Payload building ──────────────────────────────────────────────────────────

def test_feature_object_keeps_only_booleans():
    feature = schemes.build_feature_object(
        {"doorstep_qc": True, "ndr_attempts": 3},
        {"qr": True, "operation_scheme": "inter-city", "status_updates": "real-time"},
    )
    assert feature["doorstep_qc"] is True
    assert feature["qr"] is True
    assert feature["ewaybill"] is False
    assert "ndr_attempts" not in feature
    assert "operation_scheme" not in feature
    assert all(isinstance(v, bool) for v in feature.values())


@pytest.mark.parametrize(
    "update, current, expected",
    [
        ({"gte": 1, "lte": 5}, None, {"gt": 1, "lt": 5}),
        (None, {"gt": 0.5, "lt": 30}, {"gt": 0.5, "lt": 30}),
        ({"gte": 0}, None, {"gt": 0, "lt": 100}),
        (None, None, {"gt": 0.01, "lt": 100}),
    ],
)
def test_convert_weight(update, current, expected):
    assert schemes.convert_weight(update, current, schemes.DEFAULT_WEIGHT) == expected


def test_build_scheme_payload_merges_updates_over_current():
    payload = schemes.build_scheme_payload(
        "bobgo-economy",
        {
            "name": "Bob Go Express",
            "transport_type": "AIR",
            "weight": {"gte": 1, "lte": 20},
            "default_tat": {"tat": {"max": 2}},
            "feature": {"qr": True, "ndr_attempts": 0},
        },
        CURRENT,
    )
    assert payload["extension_id"] == "test-extension"
    assert payload["scheme_id"] == "bobgo-economy"
    assert payload["name"] == "Bob Go Express"
    assert payload["transport_type"] == "air"
    assert payload["weight"] == {"gt": 1, "lt": 20}
    assert payload["volumetric_weight"] == {"gt": 0.01, "lt": 1000}
    assert payload["region"] == "inter-city"
    assert payload["delivery_type"] == "two-days"
    assert payload["payment_mode"] == ["COD", "PREPAID"]
    # 0 from the update wins over the stored 2
    assert payload["ndr_attempts"] == 0
    assert payload["default_tat"] == {
        "enabled": True,
        "tat": {"min": 2, "max": 2, "unit": "days"},
    }
    assert payload["feature"]["qr"] is True
    assert payload["feature"]["doorstep_qc"] is True
    assert "pickup_cutoff" not in payload


def test_build_scheme_payload_pickup_cutoff():
    payload = schemes.build_scheme_payload(
        "s1", {"pickup_cutoff": {"forward": "14:00"}}, {"pickup_cutoff": {"timezone": "Africa/Johannesburg"}}
    )
    assert payload["pickup_cutoff"] == {
        "forward": "14:00",
        "reverse": "",
        "timezone": "Africa/Johannesburg",
    }


def test_build_new_scheme_requires_id_and_name():
    with pytest.raises(BridgeError) as excinfo:
        schemes.build_new_scheme({"name": "No id"})
    assert excinfo.value.status_code == 400

    payload = schemes.build_new_scheme({"scheme_id": "s1", "name": "Economy", "region": "inter-city"})
    assert payload["extension_id"] == "test-extension"
    assert payload["region"] == "inter-city"
    assert payload["transport_type"] == "surface"
    assert payload["feature"] == schemes.DEFAULT_FEATURES


# ── Service ───────────────────────────────────────────────────────────────────

def fake_client() -> PlatformClient:
    client = PlatformClient(company_id=COMPANY_ID, access_token="tok")
    client.get_courier_partner_schemes = AsyncMock(return_value=SCHEMES)
    client.update_courier_partner_scheme = AsyncMock(return_value={"success": True})
    return client


async def test_list_filters_to_own_schemes():
    result = await schemes.list_extension_schemes(fake_client())
    assert [s["scheme_id"] for s in result["items"]] == ["bobgo-economy"]
    assert result["page"] == {"type": "number", "current": 1, "size": 1, "item_total": 1}
    assert result["company_id"] == COMPANY_ID


async def test_scheme_with_credentials(db_session, session_factory):
    await seed_configuration(session_factory)
    data = await schemes.get_scheme_with_credentials(db_session, fake_client(), "bobgo-economy")
    assert data["name"] == "Bob Go Economy"
    assert data["credentials"] == {
        "company_name": "Acme Outdoor",
        "bobgo_token": "courier-token",
        "webhook_url": f"https://bridge.example.com/fulfillment/created?company_id={COMPANY_ID}",
    }

    with pytest.raises(BridgeError) as excinfo:
        await schemes.get_scheme_with_credentials(db_session, fake_client(), "other")
    assert excinfo.value.status_code == 404


async def test_save_scheme_rejects_blank_name(db_session):
    client = fake_client()
    with pytest.raises(BridgeError) as excinfo:
        await schemes.save_scheme(
            db_session, client, COMPANY_ID, "bobgo-economy", {"name": "   "}, None
        )
    assert excinfo.value.message == "Name is required and cannot be empty"
    client.update_courier_partner_scheme.assert_not_awaited()


async def test_save_scheme_unknown_id(db_session):
    with pytest.raises(BridgeError) as excinfo:
        await schemes.save_scheme(db_session, fake_client(), COMPANY_ID, "nope", {"name": "x"}, None)
    assert excinfo.value.status_code == 404


# ── Routes ────────────────────────────────────────────────────────────────────

async def test_routes_require_company(client):
    resp = await client.get("/apibasic/test_basic_route")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Company ID is required in header"}


async def test_routes_require_platform_session(client):
    resp = await client.get("/apibasic/test_basic_route", headers={"x-company-id": COMPANY_ID})
    assert resp.status_code == 500
    assert resp.json()["success"] is False


async def test_list_route(client, session_factory):
    await seed_platform_session(session_factory)
    with patch.object(PlatformClient, "get_courier_partner_schemes", new=AsyncMock(return_value=SCHEMES)):
        resp = await client.get(f"/apibasic/test_basic_route?company_id={COMPANY_ID}")
    assert resp.status_code == 200
    assert [s["scheme_id"] for s in resp.json()["items"]] == ["bobgo-economy"]


async def test_save_credentials_without_session(client, session_factory):
    resp = await client.put(
        "/apibasic/scheme/bobgo-economy",
        json={"credentials": {"company_name": "Acme", "bobgo_token": "new-token"}},
        headers={"x-company-id": COMPANY_ID},
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Data saved successfully"}

    async with session_factory() as session:
        row = (await session.execute(select(Configuration))).scalar_one()
    assert row.fynd_company_id == COMPANY_ID
    assert row.company_name == "Acme"
    assert row.delivery_partner_api_token_encrypted


async def test_save_credentials_keeps_existing_token(client, session_factory):
    await seed_configuration(session_factory)
    resp = await client.put(
        "/apibasic/scheme/bobgo-economy",
        json={"credentials": {"company_name": "Renamed"}},
        headers={"x-company-id": COMPANY_ID},
    )
    assert resp.status_code == 200

    resp = await client.get(f"/api/configurations/{COMPANY_ID}")
    data = resp.json()["data"]
    assert data["company_name"] == "Renamed"
    assert data["delivery_partner_API_token"] == "courier-token"


async def test_save_scheme_pushes_merged_update(client, session_factory):
    await seed_platform_session(session_factory)
    with patch.object(
        PlatformClient, "get_courier_partner_schemes", new=AsyncMock(return_value=SCHEMES)
    ), patch.object(
        PlatformClient, "update_courier_partner_scheme", new=AsyncMock(return_value={})
    ) as update:
        resp = await client.put(
            "/apibasic/scheme/bobgo-economy",
            json={"scheme_updates": {"stage": "disabled"}},
            headers={"x-company-id": COMPANY_ID},
        )

    assert resp.status_code == 200
    scheme_id, payload = update.await_args.args
    assert scheme_id == "bobgo-economy"
    assert payload["stage"] == "disabled"
    assert payload["name"] == "Bob Go Economy"


async def test_create_scheme_route(client, session_factory):
    await seed_platform_session(session_factory)
    with patch.object(
        PlatformClient, "create_courier_partner_scheme", new=AsyncMock(return_value={"scheme_id": "s1"})
    ) as create:
        resp = await client.post(
            "/apibasic/scheme",
            json={"scheme_id": "s1", "name": "Economy"},
            headers={"x-company-id": COMPANY_ID},
        )
        missing = await client.post("/apibasic/scheme", headers={"x-company-id": COMPANY_ID})

    assert resp.status_code == 200
    assert resp.json() == {"scheme_id": "s1"}
    (payload,) = create.await_args.args
    assert payload["extension_id"] == "test-extension"
    assert missing.status_code == 400


async def test_seller_account_defaults(client, session_factory):
    await seed_platform_session(session_factory)
    with patch.object(
        PlatformClient, "create_courier_partner_account", new=AsyncMock(return_value={"account_id": "a1"})
    ) as create:
        resp = await client.post(
            "/apibasic/create_seller_account",
            json={"account_id": "a1", "scheme_id": "s1"},
            headers={"x-company-id": COMPANY_ID},
        )
    assert resp.status_code == 200
    (payload,) = create.await_args.args
    assert payload == {
        "extension_id": "test-extension",
        "is_self_ship": False,
        "stage": "enabled",
        "is_own_account": True,
        "account_id": "a1",
        "scheme_id": "s1",
    }


async def test_history_drops_company_param(client, session_factory):
    await seed_platform_session(session_factory)
    with patch.object(PlatformClient, "get_bulk_tat", new=AsyncMock(return_value={"items": []})) as history:
        resp = await client.get(
            f"/apibasic/scheme_tat_history/s1?company_id={COMPANY_ID}&page_no=2&page_size=5"
        )
    assert resp.status_code == 200
    assert history.await_args.args == ("s1",)
    assert history.await_args.kwargs == {"page_no": "2", "page_size": "5"}


# ── Platform client transport ─────────────────────────────────────────────────

async def test_platform_client_request_and_errors(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "PUT":
            return httpx.Response(400, json={"message": "invalid scheme"})
        return httpx.Response(200, json={"items": []})

    real_client = httpx.AsyncClient

    def fake_async_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(platform_client_mod.httpx, "AsyncClient", fake_async_client)
    client = PlatformClient(company_id=COMPANY_ID, access_token="tok", base_url="https://platform.test/")

    assert await client.get_courier_partner_schemes() == {"items": []}
    request = seen[0]
    assert request.url.path == f"/service/platform/logistics/v2.0/company/{COMPANY_ID}/courier-partner/scheme"
    assert request.url.params["scheme_type"] == "global"
    assert request.headers["authorization"] == "Bearer tok"
    assert request.headers["x-company-id"] == COMPANY_ID

    with pytest.raises(PlatformAPIError) as excinfo:
        await client.update_courier_partner_scheme("s1", {"name": "x"})
    assert excinfo.value.status_code == 400
    assert excinfo.value.error == {"message": "invalid scheme"}
