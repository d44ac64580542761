"""
Module: stock_kernel.models.receipt
Responsibility: ORM persistence for packaging receipts (header + lines).

Invariants enforced:
    - receipt_number is unique.
    - quantity > 0 on every line (ck_receipt_line_qty_positive).
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


class Receipt(TrackedBase):
    """Receipt of packaging materials from a supplier."""

    __tablename__ = "receipts"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_receipt_number"),
        Index("idx_receipt_date", "receipt_date"),
    )

    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False)

    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)

    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    delivery_note_ref: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines = relationship(
        "ReceiptLine",
        back_populates="receipt",
        order_by="ReceiptLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<Receipt {self.receipt_number} {self.receipt_date}>"


class ReceiptLine(TrackedBase):
    """One packaging item received on a receipt."""

    __tablename__ = "receipt_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_receipt_line_qty_positive"),
        Index("idx_receipt_line_receipt", "receipt_id"),
        Index("idx_receipt_line_item", "packaging_item_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("receipts.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    packaging_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("packaging_items.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    uom: Mapped[str] = mapped_column(String(20), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    receipt = relationship("Receipt", back_populates="lines")
    packaging_item = relationship("PackagingItem")
