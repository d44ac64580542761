"""
ORM-level immutability enforcement (layer 1 of 2).

Stock movements and the documents that produced them are facts.  Once a
receipt, production batch or shipment has been committed, neither its
header, its lines, nor the ledger movements it caused may be changed or
removed.  Corrections are made by recording new documents.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications made through SQLAlchemy sessions.
    - Fires before the SQL is sent to the database.

  Layer 2: db/sql/*.sql (PostgreSQL triggers, installed by db/triggers.py)
    - Catches raw SQL and bulk UPDATE/DELETE statements.

Protected entities:

Entity               | Rule
---------------------|-------------------------------------------------------
StockMovement        | No UPDATE, no DELETE, ever.
Receipt/ReceiptLine  | No DELETE; UPDATE only of audit metadata.
ProductionBatch/Item | No DELETE; UPDATE only of audit metadata.
Shipment/ShipmentLine| No DELETE; UPDATE only of audit metadata.

updated_at/updated_by_id are audit metadata, not stock data, and stay
writable on documents.

Usage:

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to reach behind the guard may call
unregister_immutability_listeners() and re-register afterwards.
"""

from sqlalchemy import event, inspect

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _changed_columns(target) -> list[str]:
    """Column attributes of target with pending changes, in mapper order."""
    state = inspect(target)
    changed = []
    for attr in state.mapper.column_attrs:
        if state.attrs[attr.key].history.has_changes():
            changed.append(attr.key)
    return changed


def _block(target, operation: str, reason: str):
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_stock_movement_immutability(mapper, connection, target):
    """Stock movements are never updated."""
    if not _changed_columns(target):
        return
    _block(target, "UPDATE", "Stock movements are append-only")


def _check_stock_movement_delete(mapper, connection, target):
    """Stock movements are never deleted."""
    _block(target, "DELETE", "Stock movements cannot be deleted")


def _check_document_immutability(mapper, connection, target):
    """
    Committed documents may only have their audit metadata touched.

    before_update also fires for rows that are merely flagged dirty (e.g. a
    relationship collection was appended to), so only real column changes
    are inspected.
    """
    changed = [
        name for name in _changed_columns(target)
        if name not in AUDIT_METADATA_FIELDS
    ]
    if not changed:
        return
    _block(
        target,
        "UPDATE",
        f"Recorded documents are immutable (attempted change: {', '.join(changed)})",
    )


def _check_document_delete(mapper, connection, target):
    """Committed documents are never deleted."""
    _block(target, "DELETE", "Recorded documents cannot be deleted")


def _document_models():
    from stock_kernel.models.production import ProductionBatch, ProductionBatchItem
    from stock_kernel.models.receipt import Receipt, ReceiptLine
    from stock_kernel.models.shipment import Shipment, ShipmentLine

    return (
        Receipt,
        ReceiptLine,
        ProductionBatch,
        ProductionBatchItem,
        Shipment,
        ShipmentLine,
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after the models are importable and before any database work.
    Calling twice is harmless.
    """
    from stock_kernel.models.stock_movement import StockMovement

    if not event.contains(
        StockMovement, "before_update", _check_stock_movement_immutability,
    ):
        event.listen(StockMovement, "before_update", _check_stock_movement_immutability)
        event.listen(StockMovement, "before_delete", _check_stock_movement_delete)

    for model in _document_models():
        if event.contains(model, "before_update", _check_document_immutability):
            continue
        event.listen(model, "before_update", _check_document_immutability)
        event.listen(model, "before_delete", _check_document_delete)

    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: tests only.
    """
    from stock_kernel.models.stock_movement import StockMovement

    _safe_remove_listener(StockMovement, "before_update", _check_stock_movement_immutability)
    _safe_remove_listener(StockMovement, "before_delete", _check_stock_movement_delete)

    for model in _document_models():
        _safe_remove_listener(model, "before_update", _check_document_immutability)
        _safe_remove_listener(model, "before_delete", _check_document_delete)
