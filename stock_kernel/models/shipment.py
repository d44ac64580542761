"""
Module: stock_kernel.models.shipment
Responsibility: ORM persistence for shipments of finished goods (header +
    lines referencing production batch items).

Invariants enforced:
    - shipment_number is unique.
    - A batch item appears at most once per shipment
      (uq_shipment_line_batch_item).
    - quantity > 0 (ck_shipment_line_qty_positive).
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


class Shipment(TrackedBase):
    """Outbound shipment header."""

    __tablename__ = "shipments"

    __table_args__ = (
        UniqueConstraint("shipment_number", name="uq_shipment_number"),
        Index("idx_shipment_date", "shipment_date"),
        Index("idx_shipment_destination", "destination_id"),
    )

    shipment_number: Mapped[str] = mapped_column(String(50), nullable=False)

    shipment_date: Mapped[date] = mapped_column(Date, nullable=False)

    destination_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("destinations.id"),
        nullable=False,
    )

    delivery_note_ref: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    destination = relationship("Destination")
    lines = relationship(
        "ShipmentLine",
        back_populates="shipment",
        order_by="ShipmentLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<Shipment {self.shipment_number} {self.shipment_date}>"


class ShipmentLine(TrackedBase):
    """Quantity shipped from one production batch item."""

    __tablename__ = "shipment_lines"

    __table_args__ = (
        UniqueConstraint(
            "shipment_id",
            "production_batch_item_id",
            name="uq_shipment_line_batch_item",
        ),
        CheckConstraint("quantity > 0", name="ck_shipment_line_qty_positive"),
        Index("idx_shipment_line_batch_item", "production_batch_item_id"),
    )

    shipment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("shipments.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    production_batch_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("production_batch_items.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    uom: Mapped[str] = mapped_column(String(20), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    shipment = relationship("Shipment", back_populates="lines")
    batch_item = relationship("ProductionBatchItem")
