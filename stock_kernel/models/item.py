"""
Module: stock_kernel.models.item
Responsibility: ORM persistence for the two stock-bearing item variants:
    packaging materials and finished-good products.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - packaging_code and product_code are globally unique.
    - An item's identity in the ledger is (ItemKind, id); ledger rows carry
      the variant explicitly because the two tables share no key space.

Failure modes:
    - IntegrityError on duplicate code.
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase


class ItemKind(str, Enum):
    """Variant of a stock-bearing item.

    Contract: every StockMovement names exactly one ItemKind.  PACKAGING
    rows reference packaging_items.id; FINISHED_GOODS rows reference
    products.id.
    """

    PACKAGING = "packaging"
    FINISHED_GOODS = "finished_goods"


class PackagingItem(TrackedBase):
    """
    Packaging material received from suppliers and consumed by production.

    Guarantees:
        - packaging_code is unique (uq_packaging_code).
        - base_uom defaults to "pcs".
    """

    __tablename__ = "packaging_items"

    __table_args__ = (
        UniqueConstraint("packaging_code", name="uq_packaging_code"),
        Index("idx_packaging_active", "is_active"),
    )

    packaging_code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    base_uom: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pcs",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    @property
    def kind(self) -> ItemKind:
        return ItemKind.PACKAGING

    def __repr__(self) -> str:
        return f"<PackagingItem {self.packaging_code}: {self.name}>"


class Product(TrackedBase):
    """
    Finished good produced in batches and shipped to destinations.

    Guarantees:
        - product_code is unique (uq_product_code).
        - base_uom defaults to "cartons".
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("product_code", name="uq_product_code"),
        Index("idx_product_active", "is_active"),
    )

    product_code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    base_uom: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="cartons",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    bom_lines = relationship(
        "BomLine",
        back_populates="product",
        order_by="BomLine.created_at",
    )

    @property
    def kind(self) -> ItemKind:
        return ItemKind.FINISHED_GOODS

    def __repr__(self) -> str:
        return f"<Product {self.product_code}: {self.name}>"
