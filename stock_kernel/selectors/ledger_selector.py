"""
Ledger query selector.

Read side of the ledger store: signed balance aggregation over
stock_movements and movement listings.

Key design decisions:
- Balances are SUM(CASE WHEN direction = 'in' THEN quantity ELSE -quantity END)
  computed in SQL, never stored.
- Bulk variants use one grouped query; ids without movements map to zero.
- Uses the caller's Session, so reads share the workflow's transaction.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import StockMovementRecord
from stock_kernel.models.item import ItemKind
from stock_kernel.models.stock_movement import (
    MovementDirection,
    SourceDocumentType,
    StockMovement,
)
from stock_kernel.selectors.base import BaseSelector

ZERO = Decimal("0")


def _signed_quantity():
    return case(
        (StockMovement.direction == MovementDirection.IN.value, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )


def _as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class LedgerSelector(BaseSelector[StockMovement]):
    """Selector for stock ledger balances and movements."""

    def __init__(self, session: Session):
        super().__init__(session)

    # =========================================================================
    # Balances
    # =========================================================================

    def balance(self, item_kind: ItemKind, item_id: UUID) -> Decimal:
        """
        Net quantity (in minus out) of one item across all movements.

        Returns Decimal("0") when the item has no movements.
        """
        result = self.session.execute(
            select(func.sum(_signed_quantity())).where(
                StockMovement.item_kind == ItemKind(item_kind).value,
                StockMovement.item_id == item_id,
            )
        ).scalar()
        return _as_decimal(result)

    def balances_for(
        self,
        item_kind: ItemKind,
        item_ids: Iterable[UUID],
    ) -> dict[UUID, Decimal]:
        """
        Balances for several items of one kind in a single grouped query.

        Every requested id is present in the result; ids without movements
        map to zero.
        """
        ids = list(dict.fromkeys(item_ids))
        balances = {item_id: ZERO for item_id in ids}
        if not ids:
            return balances

        rows = self.session.execute(
            select(StockMovement.item_id, func.sum(_signed_quantity()))
            .where(
                StockMovement.item_kind == ItemKind(item_kind).value,
                StockMovement.item_id.in_(ids),
            )
            .group_by(StockMovement.item_id)
        ).all()

        for item_id, total in rows:
            balances[item_id] = _as_decimal(total)
        return balances

    def batch_item_balance(self, batch_item_id: UUID) -> Decimal:
        """Net finished-goods quantity carried by one production batch item."""
        result = self.session.execute(
            select(func.sum(_signed_quantity())).where(
                StockMovement.item_kind == ItemKind.FINISHED_GOODS.value,
                StockMovement.batch_item_id == batch_item_id,
            )
        ).scalar()
        return _as_decimal(result)

    def batch_item_balances_for(
        self,
        batch_item_ids: Iterable[UUID],
    ) -> dict[UUID, Decimal]:
        ids = list(dict.fromkeys(batch_item_ids))
        balances = {batch_item_id: ZERO for batch_item_id in ids}
        if not ids:
            return balances

        rows = self.session.execute(
            select(StockMovement.batch_item_id, func.sum(_signed_quantity()))
            .where(
                StockMovement.item_kind == ItemKind.FINISHED_GOODS.value,
                StockMovement.batch_item_id.in_(ids),
            )
            .group_by(StockMovement.batch_item_id)
        ).all()

        for batch_item_id, total in rows:
            balances[batch_item_id] = _as_decimal(total)
        return balances

    # =========================================================================
    # Movements
    # =========================================================================

    def get_movement(self, movement_id: UUID) -> StockMovementRecord | None:
        movement = self.session.get(StockMovement, movement_id)
        if movement is None:
            return None
        return StockMovementRecord.from_model(movement)

    def list_movements(
        self,
        item_kind: ItemKind | None = None,
        item_id: UUID | None = None,
        batch_item_id: UUID | None = None,
        direction: MovementDirection | None = None,
        source_type: SourceDocumentType | None = None,
        source_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StockMovementRecord]:
        """
        Movements matching every given filter.

        Ordered by movement_date, then creation time, then id so that the
        listing is stable.  date_from and date_to are inclusive.
        """
        stmt = select(StockMovement)

        if item_kind is not None:
            stmt = stmt.where(StockMovement.item_kind == ItemKind(item_kind).value)
        if item_id is not None:
            stmt = stmt.where(StockMovement.item_id == item_id)
        if batch_item_id is not None:
            stmt = stmt.where(StockMovement.batch_item_id == batch_item_id)
        if direction is not None:
            stmt = stmt.where(
                StockMovement.direction == MovementDirection(direction).value
            )
        if source_type is not None:
            stmt = stmt.where(
                StockMovement.source_type == SourceDocumentType(source_type).value
            )
        if source_id is not None:
            stmt = stmt.where(StockMovement.source_id == source_id)
        if date_from is not None:
            stmt = stmt.where(StockMovement.movement_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(StockMovement.movement_date <= date_to)

        stmt = stmt.order_by(
            StockMovement.movement_date,
            StockMovement.created_at,
            StockMovement.id,
        )

        movements = self.session.execute(stmt).scalars().all()
        return [StockMovementRecord.from_model(m) for m in movements]

    def movements_for_document(
        self,
        source_type: SourceDocumentType,
        source_id: UUID,
    ) -> list[StockMovementRecord]:
        """All movements written by one receipt, production batch or shipment."""
        return self.list_movements(source_type=source_type, source_id=source_id)
