#!/usr/bin/env python3
"""
CLI: inspect and initialise the courier configuration store.

Usage:
    # Create missing tables
    python -m cli.configurations --init-db

    # List every tenant configuration
    python -m cli.configurations --list

    # Show one tenant (token masked)
    python -m cli.configurations --show 11874

    # Show tracked shipments
    python -m cli.configurations --shipments
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from sqlalchemy import select

from courier_bridge.admin.crypto import mask
from courier_bridge.database import create_tables, get_db_ctx
from courier_bridge.models import Shipment
from courier_bridge.services import configurations


async def cmd_init_db() -> None:
    await create_tables()
    print("Tables created (existing tables left untouched).")


async def cmd_list() -> None:
    async with get_db_ctx() as session:
        rows = await configurations.get_all(session)

    if not rows:
        print("No configurations found.")
        return

    print(f"\n{'COMPANY_ID':<14} {'NAME':<30} {'CITY':<20} {'TOKEN':<8} UPDATED")
    print("-" * 95)
    for r in rows:
        token = "set" if r.delivery_partner_api_token_encrypted else "-"
        print(
            f"{r.fynd_company_id:<14} {(r.company_name or '-'):<30} "
            f"{(r.city or '-'):<20} {token:<8} {r.updated_at}"
        )


async def cmd_show(company_id: str) -> None:
    async with get_db_ctx() as session:
        row = await configurations.get_by_company_id(session, company_id)
        if row is None:
            print(f"ERROR: no configuration for company {company_id!r}", file=sys.stderr)
            sys.exit(1)
        data = configurations.to_dict(row)

    data["delivery_partner_API_token"] = mask(data["delivery_partner_API_token"])
    print(json.dumps(data, indent=2, default=str))


async def cmd_shipments() -> None:
    async with get_db_ctx() as session:
        rows = (
            await session.execute(select(Shipment).order_by(Shipment.updated_at.desc()))
        ).scalars().all()

    if not rows:
        print("No shipments tracked yet.")
        return

    print(f"\n{'ORDER':<24} {'SHIPMENT':<24} {'COURIER_ORDER':<14} {'PLATFORM':<22} COURIER")
    print("-" * 110)
    for r in rows:
        print(
            f"{r.fynd_order_id:<24} {(r.fynd_shipment_id or '-'):<24} "
            f"{(r.bobgo_order_id or '-'):<14} {(r.fynd_status or '-'):<22} {r.courier_status or '-'}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Courier bridge configuration CLI")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables")
    parser.add_argument("--list", action="store_true", help="List tenant configurations")
    parser.add_argument("--show", metavar="COMPANY_ID", help="Show one tenant configuration")
    parser.add_argument("--shipments", action="store_true", help="List tracked shipments")
    args = parser.parse_args()

    if args.init_db:
        asyncio.run(cmd_init_db())
    elif args.show:
        asyncio.run(cmd_show(args.show))
    elif args.shipments:
        asyncio.run(cmd_shipments())
    elif args.list:
        asyncio.run(cmd_list())
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
