"""
PartStock command line.

  partstock maintenance --type {all,reports,alerts,cleanup,metrics}
  partstock issue-token NAME [--hours N]
  partstock seed

`seed` is idempotent: parts whose SKU already exists are skipped.
"""
import argparse
import asyncio
import json
import logging
from datetime import timedelta

from sqlalchemy import select

from partstock.core.logging import configure_logging
from partstock.core.security import create_access_token
from partstock.db.database import async_session, create_tables
from partstock.db.models import Inventory
from partstock.services.inventory import create_item
from partstock.services.maintenance import run_maintenance, MAINTENANCE_TYPES

logger = logging.getLogger(__name__)

SEED_ACTOR = "Seeder"

SAMPLE_PARTS = [
    {"item_id": "BRK-PAD-001", "item_name": "Brake Pads - Front Set",
     "description": "High-performance ceramic brake pads for front wheels",
     "category": "Brakes", "stock": 25, "reorder_level": 10, "unit_price": 45.99,
     "supplier": "AutoParts Plus", "location": "A1-01"},
    {"item_id": "ENG-OIL-5W30", "item_name": "Engine Oil 5W-30",
     "description": "Synthetic motor oil 5W-30, 5-liter container",
     "category": "Oils & Fluids", "stock": 50, "reorder_level": 15, "unit_price": 28.50,
     "supplier": "ProMechanic Supply", "location": "B2-01"},
    {"item_id": "BAT-12V-75AH", "item_name": "Car Battery 12V 75AH",
     "description": "Lead-acid car battery with 75AH capacity",
     "category": "Electrical", "stock": 15, "reorder_level": 8, "unit_price": 125.00,
     "supplier": "Elite Auto Components", "location": "C3-01"},
    {"item_id": "TIRE-205-65R16", "item_name": "All-Season Tire 205/65R16",
     "description": "All-season passenger tire 205/65R16",
     "category": "Tires", "stock": 32, "reorder_level": 12, "unit_price": 89.99,
     "supplier": "MasterParts Inc", "location": "D4-01"},
    {"item_id": "OIL-FLT-5W30", "item_name": "Oil Filter - 5W30 Compatible",
     "description": "High-efficiency oil filter compatible with 5W30 oil",
     "category": "Filters", "stock": 5, "reorder_level": 20, "unit_price": 12.99,
     "supplier": "AutoParts Plus", "location": "A1-02"},
    {"item_id": "SPARK-PLG-NGK", "item_name": "NGK Spark Plugs (Set of 4)",
     "description": "NGK Iridium spark plugs, set of 4",
     "category": "Engine", "stock": 0, "reorder_level": 15, "unit_price": 32.50,
     "supplier": "SpeedTech Parts", "location": "B2-02"},
    {"item_id": "AIR-FLT-STD", "item_name": "Air Filter - Standard",
     "description": "Standard air filter for most passenger vehicles",
     "category": "Filters", "stock": 40, "reorder_level": 18, "unit_price": 15.75,
     "supplier": "ProMechanic Supply", "location": "A1-03"},
    {"item_id": "WIPER-BLD-24", "item_name": "Windshield Wiper Blade 24\"",
     "description": "24-inch windshield wiper blade",
     "category": "Electrical", "stock": 22, "reorder_level": 10, "unit_price": 18.99,
     "supplier": "Elite Auto Components", "location": "C3-02"},
]


async def maintenance(maintenance_type: str) -> dict:
    await create_tables()
    async with async_session() as session:
        return await run_maintenance(session, maintenance_type)


async def seed() -> int:
    await create_tables()
    created = 0
    async with async_session() as session:
        for part in SAMPLE_PARTS:
            exists = await session.execute(select(Inventory.id).where(Inventory.item_id == part["item_id"]))
            if exists.scalar_one_or_none() is not None:
                logger.info(f"Skipping existing part {part['item_id']}")
                continue
            await create_item(session, dict(part), SEED_ACTOR)
            created += 1
    logger.info(f"Seeded {created} parts")
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(prog="partstock")
    sub = parser.add_subparsers(dest="cmd")

    p_m = sub.add_parser("maintenance", help="Run inventory maintenance")
    p_m.add_argument("--type", dest="maintenance_type", choices=MAINTENANCE_TYPES, default="all")

    p_t = sub.add_parser("issue-token", help="Issue a bearer token for a staff member")
    p_t.add_argument("name")
    p_t.add_argument("--hours", type=int, default=None)

    sub.add_parser("seed", help="Load sample auto parts")

    args = parser.parse_args(argv)
    configure_logging()

    if args.cmd == "maintenance":
        results = asyncio.run(maintenance(args.maintenance_type))
        print(json.dumps(results, indent=2, default=str))
    elif args.cmd == "issue-token":
        expires = timedelta(hours=args.hours) if args.hours else None
        print(create_access_token({"sub": args.name}, expires))
    elif args.cmd == "seed":
        created = asyncio.run(seed())
        print(f"Seeded {created} parts")
    else:
        parser.print_help()
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
