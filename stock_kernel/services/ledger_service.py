"""
Ledger service - write side of the stock ledger.

The ledger service is responsible for:
- Appending immutable StockMovement rows
- Rejecting non-positive quantities before they reach the database
- Translating storage failures into PersistenceError

The ledger service does NOT:
- Decide which movements a document causes (that's the orchestrator)
- Check stock sufficiency (that's the SufficiencyValidator)
- Commit (the caller owns the transaction)
"""

from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import MovementSpec, StockMovementRecord
from stock_kernel.exceptions import PersistenceError, ValidationError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import ItemKind
from stock_kernel.models.stock_movement import (
    MovementDirection,
    SourceDocumentType,
    StockMovement,
)
from stock_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class LedgerService(BaseService[StockMovement]):
    """Append-only writer for stock movements."""

    def __init__(self, session: Session):
        super().__init__(session)

    def append(self, spec: MovementSpec, actor_id) -> StockMovementRecord:
        """
        Insert one immutable stock movement.

        Preconditions:
            spec.quantity > 0.  batch_item_id is only given for finished
            goods.
        Postconditions:
            The movement is flushed into the caller's transaction and has an
            id.  Nothing is committed.

        Raises:
            ValidationError: Non-positive quantity or a batch item reference
                on a packaging movement.
            PersistenceError: The flush failed.  The cause is chained.
        """
        quantity = Decimal(spec.quantity)
        if quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {quantity}")
        if spec.batch_item_id is not None and ItemKind(spec.item_kind) != ItemKind.FINISHED_GOODS:
            raise ValidationError(
                "batch_item_id",
                "only finished-goods movements reference a batch item",
            )

        movement = StockMovement(
            movement_date=spec.movement_date,
            item_kind=ItemKind(spec.item_kind).value,
            item_id=spec.item_id,
            batch_item_id=spec.batch_item_id,
            quantity=quantity,
            uom=spec.uom,
            direction=MovementDirection(spec.direction).value,
            source_type=SourceDocumentType(spec.source_type).value,
            source_id=spec.source_id,
            notes=spec.notes,
            created_by_id=actor_id,
        )

        try:
            self.session.add(movement)
            self.session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "movement_append_failed",
                extra={
                    "item_kind": movement.item_kind,
                    "item_id": str(spec.item_id),
                    "source_type": movement.source_type,
                    "source_id": str(spec.source_id),
                },
                exc_info=True,
            )
            raise PersistenceError("append stock movement") from exc

        logger.debug(
            "movement_appended",
            extra={
                "movement_id": str(movement.id),
                "item_kind": movement.item_kind,
                "item_id": str(movement.item_id),
                "direction": movement.direction,
                "quantity": str(quantity),
                "source_type": movement.source_type,
            },
        )

        return StockMovementRecord.from_model(movement)
