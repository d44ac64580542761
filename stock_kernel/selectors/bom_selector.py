"""
Bill-of-materials resolver.

Expands "N units of product P" into the packaging components and quantities
needed to produce them.

Invariants:
- Only active BOM lines count; an inactive line is as good as absent.
- Output is ordered by packaging code, so callers and reports see a stable
  component order.
- required_quantity = qty_per_unit * quantity, exact Decimal arithmetic.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import ComponentRequirement
from stock_kernel.exceptions import BomNotFoundError
from stock_kernel.models.bom import BomLine
from stock_kernel.models.item import PackagingItem
from stock_kernel.selectors.base import BaseSelector


class BomResolver(BaseSelector[BomLine]):
    """Resolves product BOMs into packaging requirements."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _active_lines(self, product_id: UUID) -> list[tuple[BomLine, PackagingItem]]:
        return list(
            self.session.execute(
                select(BomLine, PackagingItem)
                .join(PackagingItem, BomLine.packaging_item_id == PackagingItem.id)
                .where(
                    BomLine.product_id == product_id,
                    BomLine.is_active.is_(True),
                )
                .order_by(PackagingItem.packaging_code)
            ).all()
        )

    def has_bom(self, product_id: UUID) -> bool:
        return bool(self._active_lines(product_id))

    def requirements_for(
        self,
        product_id: UUID,
        quantity: Decimal,
        batch_code: str | None = None,
    ) -> list[ComponentRequirement]:
        """
        Packaging components needed to produce `quantity` units of a product.

        Args:
            product_id: Product to expand.
            quantity: Units to produce.
            batch_code: Only used to make a BomNotFoundError point at the
                offending request line.

        Raises:
            BomNotFoundError: The product has no active BOM lines.
        """
        lines = self._active_lines(product_id)
        if not lines:
            raise BomNotFoundError(str(product_id), batch_code=batch_code)

        return [
            ComponentRequirement(
                packaging_item_id=packaging_item.id,
                packaging_item_name=packaging_item.name,
                required_quantity=bom_line.qty_per_unit * quantity,
                uom=bom_line.uom,
            )
            for bom_line, packaging_item in lines
        ]
