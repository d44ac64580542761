#!/usr/bin/env python3
"""
Seed the database with reference master data and an opening receipt.

Creates the tables (and, on PostgreSQL, the immutability triggers), registers
the coconut chip products, their packaging, bills of materials and shipment
destinations, then records an opening packaging receipt through the receipt
workflow.

Usage:
    python3 scripts/seed_data.py
    python3 scripts/seed_data.py --config path/to/config.yaml --reset
"""

import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

SEED_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")
OPENING_RECEIPT_NUMBER = "RCV-OPENING-0001"

PACKAGING_ITEMS = [
    ("STP-CCO-50", "Standing Pouch Coconut Chips Original 50gr"),
    ("CTN50", "Karton Box 50 pcs"),
    ("CTN24", "Karton Box 24 pcs"),
]

PRODUCTS = [
    ("CCO-CTN50", "STP-CCO-50", "Coconut Chips Original 50gr, carton of 50 pouches"),
    ("CCO-CTN24", "STP-CCO-24", "Coconut Chips Original 50gr, carton of 24 pouches"),
]

# product code -> [(packaging code, qty per carton)]
BOMS = {
    "CCO-CTN50": [("STP-CCO-50", Decimal("50")), ("CTN50", Decimal("1"))],
    "CCO-CTN24": [("STP-CCO-50", Decimal("24")), ("CTN24", Decimal("1"))],
}

DESTINATIONS = [
    "Jakarta, Indonesia",
    "Surabaya, Indonesia",
    "Bandung, Indonesia",
    "Medan, Indonesia",
    "Semarang, Indonesia",
    "Makassar, Indonesia",
    "Palembang, Indonesia",
    "Tangerang, Indonesia",
    "Depok, Indonesia",
    "Bekasi, Indonesia",
]

OPENING_STOCK = {
    "STP-CCO-50": Decimal("10000"),
    "CTN50": Decimal("100"),
    "CTN24": Decimal("100"),
}


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed reference data and opening stock")
    p.add_argument(
        "--config",
        default=None,
        help="YAML configuration file (default: stock_config/sets/default.yaml)",
    )
    p.add_argument(
        "--database-url",
        default=None,
        help="Override database.url from the configuration",
    )
    p.add_argument(
        "--reset",
        action="store_true",
        help="Drop all tables before seeding",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from stock_config import get_active_config
    from stock_kernel.db.engine import (
        create_tables,
        drop_tables,
        get_session,
        init_engine_from_url,
    )
    from stock_kernel.db.immutability import register_immutability_listeners
    from stock_kernel.domain.dtos import ReceiptLineRequest
    from stock_kernel.exceptions import StockKernelError
    from stock_kernel.logging_config import configure_logging
    from stock_kernel.services.master_data_service import MasterDataService
    from stock_kernel.services.workflow_orchestrator import StockWorkflowOrchestrator

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)

    db = config.database
    url = args.database_url or db.url

    print()
    print(f"  [1/4] Connecting to {url.split('@')[-1]}...")
    try:
        init_engine_from_url(
            url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=db.pool_pre_ping,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
        )
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    print("  [2/4] Creating schema...")
    if args.reset:
        drop_tables()
    create_tables(install_triggers=config.ledger.install_triggers)
    register_immutability_listeners()

    session = get_session()
    try:
        master = MasterDataService(session)
        if master.list_products(active_only=False):
            print("  Database already seeded. Use --reset to start over.")
            return 0

        print("  [3/4] Registering packaging, products, BOMs and destinations...")
        packaging = {
            code: master.create_packaging_item(
                code, name, SEED_ACTOR_ID, base_uom=config.uom.packaging_default,
            )
            for code, name in PACKAGING_ITEMS
        }
        products = {
            code: master.create_product(
                code,
                name,
                SEED_ACTOR_ID,
                base_uom=config.uom.finished_goods_default,
                description=description,
            )
            for code, name, description in PRODUCTS
        }
        for product_code, components in BOMS.items():
            for packaging_code, qty in components:
                master.add_bom_line(
                    products[product_code].id,
                    packaging[packaging_code].id,
                    qty,
                    SEED_ACTOR_ID,
                    uom=config.uom.packaging_default,
                )
        for name in DESTINATIONS:
            master.create_destination(name, SEED_ACTOR_ID)
        session.commit()

        print("  [4/4] Recording opening packaging receipt...")
        orchestrator = StockWorkflowOrchestrator(
            session,
            lock_balance_rows=config.ledger.lock_balance_rows,
            finished_goods_uom=config.uom.finished_goods_default,
        )
        result = orchestrator.record_receipt(
            receipt_number=OPENING_RECEIPT_NUMBER,
            receipt_date=date.today(),
            supplier_name="Opening balance",
            lines=[
                ReceiptLineRequest(packaging[code].id, qty)
                for code, qty in OPENING_STOCK.items()
            ],
            actor_id=SEED_ACTOR_ID,
            notes="Opening stock",
        )
    except StockKernelError as exc:
        session.rollback()
        print(f"  ERROR: {exc.code}: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    print()
    print(f"  Seeded {len(PACKAGING_ITEMS)} packaging items, {len(PRODUCTS)} products,")
    print(f"  {sum(len(c) for c in BOMS.values())} BOM lines, {len(DESTINATIONS)} destinations.")
    print(f"  Opening receipt {result.receipt_number}: {len(result.movement_ids)} movements.")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
