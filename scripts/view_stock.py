#!/usr/bin/env python3
"""
Print current packaging and finished-goods stock, and the production batch
items that still have stock to ship.

Usage:
    python3 scripts/view_stock.py
    python3 scripts/view_stock.py --config path/to/config.yaml --movements
"""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 80


def _fmt(v: Decimal) -> str:
    return f"{v.normalize():,f}"


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Show stock derived from the ledger")
    p.add_argument("--config", default=None, help="YAML configuration file")
    p.add_argument("--database-url", default=None, help="Override database.url")
    p.add_argument(
        "--movements",
        action="store_true",
        help="Also list every stock movement",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()
    logging.disable(logging.CRITICAL)

    from stock_config import get_active_config
    from stock_kernel.db.engine import get_session, init_engine_from_url
    from stock_kernel.models.item import ItemKind
    from stock_kernel.selectors.balance_selector import BalanceSelector
    from stock_kernel.selectors.ledger_selector import LedgerSelector

    config = get_active_config(args.config)
    try:
        init_engine_from_url(args.database_url or config.database.url, echo=False)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    session = get_session()
    try:
        balances = BalanceSelector(session)

        print()
        print("=" * W)
        print("STOCK ON HAND".center(W))
        print("=" * W)

        for kind, title in (
            (ItemKind.PACKAGING, "Packaging"),
            (ItemKind.FINISHED_GOODS, "Finished goods"),
        ):
            levels = balances.stock_summary(kind)
            print()
            print(f"  {title}")
            print(f"  {'Code':<14} {'Name':<44} {'Balance':>12} {'UoM':<6}")
            print(f"  {'-'*14} {'-'*44} {'-'*12} {'-'*6}")
            if not levels:
                print("  (none)")
            for level in levels:
                print(
                    f"  {level.code:<14} {level.name[:44]:<44} "
                    f"{_fmt(level.balance):>12} {level.uom:<6}"
                )

        available = balances.available_batch_items()
        print()
        print("  Batches with remaining stock")
        print(f"  {'Batch code':<20} {'Product':<24} {'Produced':>10} {'Remaining':>10} {'Date':>10}")
        print(f"  {'-'*20} {'-'*24} {'-'*10} {'-'*10} {'-'*10}")
        if not available:
            print("  (none)")
        for batch in available:
            print(
                f"  {batch.batch_code:<20} {batch.product_name[:24]:<24} "
                f"{_fmt(batch.quantity_produced):>10} {_fmt(batch.remaining):>10} "
                f"{batch.production_date.isoformat():>10}"
            )

        if args.movements:
            movements = LedgerSelector(session).list_movements()
            print()
            print(f"  Movements ({len(movements)})")
            for m in movements:
                sign = "+" if m.direction.value == "in" else "-"
                print(
                    f"  {m.movement_date.isoformat()}  {sign}{_fmt(m.quantity):>10} {m.uom:<8} "
                    f"{m.source_type.value:<10} {m.notes or ''}"
                )

        print()
        return 0

    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
