"""
Module: stock_kernel.models.stock_movement
Responsibility: ORM persistence for the stock ledger.  A StockMovement is one
    immutable in/out quantity fact tied to the document that caused it.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners in db/immutability.py
      and PostgreSQL triggers in db/sql/01_stock_movement.sql).
    - quantity > 0; the sign lives in `direction`.
    - direction in ('in', 'out'); item_kind in ('packaging', 'finished_goods');
      source_type in ('receipt', 'production', 'shipment').

Failure modes:
    - IntegrityError on a check-constraint violation.
    - ImmutabilityViolationError on any UPDATE or DELETE.

Audit relevance:
    This table is the ledger's sole unit of truth.  Current stock and batch
    remaining stock are always derived from it by aggregation.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString
from stock_kernel.models.item import ItemKind


class MovementDirection(str, Enum):
    """Side of a ledger movement."""

    IN = "in"
    OUT = "out"


class SourceDocumentType(str, Enum):
    """Document type that produced a ledger movement."""

    RECEIPT = "receipt"
    PRODUCTION = "production"
    SHIPMENT = "shipment"


class StockMovement(TrackedBase):
    """
    Immutable stock ledger row.

    Contract:
        item_id references packaging_items.id when item_kind is PACKAGING and
        products.id when item_kind is FINISHED_GOODS (no FK: polymorphic).
        batch_item_id is set only on finished-goods movements.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_qty_positive"),
        CheckConstraint(
            "direction IN ('in', 'out')",
            name="ck_movement_direction",
        ),
        CheckConstraint(
            "item_kind IN ('packaging', 'finished_goods')",
            name="ck_movement_item_kind",
        ),
        CheckConstraint(
            "source_type IN ('receipt', 'production', 'shipment')",
            name="ck_movement_source_type",
        ),
        Index("idx_movement_date", "movement_date"),
        Index("idx_movement_item", "item_kind", "item_id"),
        Index("idx_movement_batch_item", "batch_item_id"),
        Index("idx_movement_source", "source_type", "source_id"),
    )

    movement_date: Mapped[date] = mapped_column(Date, nullable=False)

    item_kind: Mapped[ItemKind] = mapped_column(String(20), nullable=False)

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    batch_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("production_batch_items.id"),
        nullable=True,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    uom: Mapped[str] = mapped_column(String(20), nullable=False)

    direction: Mapped[MovementDirection] = mapped_column(
        String(3),
        nullable=False,
    )

    source_type: Mapped[SourceDocumentType] = mapped_column(
        String(20),
        nullable=False,
    )

    source_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def signed_quantity(self) -> Decimal:
        if self.direction == MovementDirection.IN:
            return self.quantity
        return -self.quantity

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.direction} {self.quantity} {self.uom} "
            f"{self.item_kind}:{self.item_id} ({self.source_type})>"
        )
