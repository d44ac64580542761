"""
Module: stock_kernel.db.triggers
Responsibility: Loading, installing, and verifying the PostgreSQL
    immutability triggers (layer 2 of 2).  Database-level complement to the
    ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/,
    selectors/, domain/, or outer layers.

Invariants enforced:
    - stock_movements: no UPDATE, no DELETE.
    - receipts, receipt_lines, production_batches, production_batch_items,
      shipments, shipment_lines: no DELETE; UPDATE only of updated_at /
      updated_by_id.

Failure modes:
    - PostgreSQL RAISE EXCEPTION on any violation (surfaces as
      sqlalchemy.exc.InternalError / DBAPIError).
    - FileNotFoundError if SQL files are missing from the sql/ directory.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

from stock_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

SQL_DIR = Path(__file__).parent / "sql"

TRIGGER_FILES = [
    "01_stock_movement.sql",
    "02_documents.sql",
]

DROP_FILE = "99_drop_all.sql"

DOCUMENT_TABLES = [
    "receipts",
    "receipt_lines",
    "production_batches",
    "production_batch_items",
    "shipments",
    "shipment_lines",
]

ALL_TRIGGER_NAMES = [
    "trg_stock_movement_immutability_update",
    "trg_stock_movement_immutability_delete",
    *(f"trg_{table}_immutability_update" for table in DOCUMENT_TABLES),
    *(f"trg_{table}_immutability_delete" for table in DOCUMENT_TABLES),
]


def _load_sql_file(filename: str) -> str:
    return (SQL_DIR / filename).read_text(encoding="utf-8")


def _load_all_trigger_sql() -> str:
    """Concatenate all trigger files in numbered order."""
    sql_parts = []
    for filename in TRIGGER_FILES:
        sql_parts.append(f"-- Loading: {filename}")
        sql_parts.append(_load_sql_file(filename))
        sql_parts.append("")
    return "\n".join(sql_parts)


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers.

    Preconditions: tables exist; engine is connected to PostgreSQL.
    Postconditions: every trigger in ALL_TRIGGER_NAMES is installed.
        Functions use CREATE OR REPLACE and triggers are dropped first, so
        a second call is idempotent.
    """
    sql_content = _load_all_trigger_sql()

    with engine.connect() as conn:
        conn.execute(text(sql_content))
        conn.commit()

    logger.info(
        "immutability_triggers_installed",
        extra={"trigger_count": len(ALL_TRIGGER_NAMES)},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level immutability triggers.

    WARNING: only for teardown and data migrations.  Re-install immediately.
    """
    with engine.connect() as conn:
        conn.execute(text(_load_sql_file(DROP_FILE)))
        conn.commit()

    logger.warning("immutability_triggers_uninstalled")


def get_installed_triggers(engine: Engine) -> list[str]:
    trigger_list = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    check_sql = f"""
    SELECT tgname FROM pg_trigger
    WHERE tgname IN ({trigger_list})
    ORDER BY tgname;
    """

    with engine.connect() as conn:
        result = conn.execute(text(check_sql))
        return [row[0] for row in result]


def triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is present in pg_trigger."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)


def get_missing_triggers(engine: Engine) -> list[str]:
    installed = set(get_installed_triggers(engine))
    return sorted(set(ALL_TRIGGER_NAMES) - installed)
