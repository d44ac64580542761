"""
Module: stock_kernel.models.production
Responsibility: ORM persistence for production batches.  A batch is a header
    (production date, PO number) owning one or more batch items, each with its
    own batch/MFD code, product and produced quantity.

Invariants enforced:
    - batch_code is globally unique (uq_batch_item_code).
    - quantity_produced > 0 (ck_batch_item_qty_positive).
    - Immutable after creation (db/immutability.py, db/sql/02_documents.sql).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase, UUIDString


class ProductionBatch(TrackedBase):
    """Production run header."""

    __tablename__ = "production_batches"

    __table_args__ = (
        Index("idx_production_date", "production_date"),
        Index("idx_production_po", "po_number"),
    )

    production_date: Mapped[date] = mapped_column(Date, nullable=False)

    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items = relationship(
        "ProductionBatchItem",
        back_populates="batch",
        order_by="ProductionBatchItem.line_number",
    )

    def __repr__(self) -> str:
        return f"<ProductionBatch {self.id} {self.production_date}>"


class ProductionBatchItem(TrackedBase):
    """
    One product produced within a batch, identified by its batch/MFD code.

    Remaining stock of a batch item is never stored; see
    BalanceSelector.remaining_stock().
    """

    __tablename__ = "production_batch_items"

    __table_args__ = (
        UniqueConstraint("batch_code", name="uq_batch_item_code"),
        CheckConstraint(
            "quantity_produced > 0",
            name="ck_batch_item_qty_positive",
        ),
        Index("idx_batch_item_batch", "production_batch_id"),
        Index("idx_batch_item_product", "product_id"),
    )

    production_batch_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("production_batches.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    batch_code: Mapped[str] = mapped_column(String(100), nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity_produced: Mapped[Decimal] = mapped_column(nullable=False)

    uom: Mapped[str] = mapped_column(String(20), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    batch = relationship("ProductionBatch", back_populates="items")
    product = relationship("Product")

    def __repr__(self) -> str:
        return (
            f"<ProductionBatchItem {self.batch_code} "
            f"product={self.product_id} qty={self.quantity_produced}>"
        )
