"""
Module: stock_kernel.models.bom
Responsibility: ORM persistence for bill-of-materials lines (which packaging
    components, and how many, go into one unit of a product).

Invariants enforced:
    - UNIQUE(product_id, packaging_item_id): one line per component.
    - qty_per_unit > 0 (ck_bom_qty_positive).

Failure modes:
    - IntegrityError on duplicate component or non-positive quantity.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase, UUIDString


class BomLine(TrackedBase):
    """
    One packaging component of a product.

    Contract:
        Lines with is_active=False are retired: they are kept for history
        but ignored by the BOM resolver.
    """

    __tablename__ = "bom_lines"

    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "packaging_item_id",
            name="uq_bom_product_component",
        ),
        CheckConstraint("qty_per_unit > 0", name="ck_bom_qty_positive"),
        Index("idx_bom_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    packaging_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("packaging_items.id"),
        nullable=False,
    )

    qty_per_unit: Mapped[Decimal] = mapped_column(nullable=False)

    uom: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    product = relationship("Product", back_populates="bom_lines")
    packaging_item = relationship("PackagingItem")

    def __repr__(self) -> str:
        return (
            f"<BomLine product={self.product_id} "
            f"component={self.packaging_item_id} qty={self.qty_per_unit}>"
        )
