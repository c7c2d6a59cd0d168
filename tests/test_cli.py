"""
Configuration CLI output.
"""
from __future__ import annotations

import json
from contextlib import asynccontextmanager

import pytest

import cli.configurations as cli_mod
from conftest import COMPANY_ID, seed_configuration
from courier_bridge.models import Shipment


@pytest.fixture
def cli_db(session_factory, monkeypatch):
    @asynccontextmanager
    async def _ctx():
        async with session_factory() as session:
            yield session
            await session.commit()

    monkeypatch.setattr(cli_mod, "get_db_ctx", _ctx)
    return session_factory


async def test_list_empty(cli_db, capsys):
    await cli_mod.cmd_list()
    assert "No configurations found." in capsys.readouterr().out


async def test_list_and_show_masks_token(cli_db, capsys):
    await seed_configuration(cli_db)

    await cli_mod.cmd_list()
    out = capsys.readouterr().out
    assert COMPANY_ID in out
    assert "Acme Outdoor" in out

    await cli_mod.cmd_show(COMPANY_ID)
    data = json.loads(capsys.readouterr().out)
    assert data["fynd_company_id"] == COMPANY_ID
    assert data["delivery_partner_API_token"] == "********oken"


async def test_show_unknown_exits(cli_db, capsys):
    with pytest.raises(SystemExit) as excinfo:
        await cli_mod.cmd_show("missing")
    assert excinfo.value.code == 1
    assert "no configuration" in capsys.readouterr().err


async def test_shipments(cli_db, capsys):
    async with cli_db() as session:
        session.add(Shipment(
            company_id=COMPANY_ID,
            fynd_order_id="FY6512ABC",
            fynd_shipment_id="17000001",
            bobgo_order_id="991",
            fynd_status="dp_assigned",
        ))
        await session.commit()

    await cli_mod.cmd_shipments()
    out = capsys.readouterr().out
    assert "FY6512ABC" in out
    assert "dp_assigned" in out
