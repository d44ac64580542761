"""
Balance selector.

Current stock of packaging items and finished goods, and remaining stock of
production batch items, derived from the stock ledger.

Remaining stock has exactly one implementation: the ledger balance of the
batch item.  The production inbound movement and every shipment outbound
movement are committed together with their documents, so
quantity_produced - sum(shipment lines) always equals it.
reconcile_batch_item() checks that claim for one batch item.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import (
    BatchItemReconciliation,
    BatchItemStock,
    StockLevel,
)
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.models.item import ItemKind, PackagingItem, Product
from stock_kernel.models.production import ProductionBatch, ProductionBatchItem
from stock_kernel.models.shipment import ShipmentLine
from stock_kernel.models.stock_movement import StockMovement
from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.ledger_selector import ZERO, LedgerSelector


class BalanceSelector(BaseSelector[StockMovement]):
    """Derived stock figures for items and batch items."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._ledger = LedgerSelector(session)

    def current_stock(self, item_kind: ItemKind, item_id: UUID) -> Decimal:
        """Net in/out of a packaging item, or of a product across all batches."""
        return self._ledger.balance(item_kind, item_id)

    def current_stocks(
        self,
        item_kind: ItemKind,
        item_ids: Iterable[UUID],
    ) -> dict[UUID, Decimal]:
        return self._ledger.balances_for(item_kind, item_ids)

    def remaining_stock(self, batch_item_id: UUID) -> Decimal:
        """Quantity of a production batch item not yet shipped."""
        return self._ledger.batch_item_balance(batch_item_id)

    def remaining_stocks(self, batch_item_ids: Iterable[UUID]) -> dict[UUID, Decimal]:
        return self._ledger.batch_item_balances_for(batch_item_ids)

    def shipped_quantity(self, batch_item_id: UUID) -> Decimal:
        """Sum of shipment line quantities for one batch item."""
        result = self.session.execute(
            select(func.sum(ShipmentLine.quantity)).where(
                ShipmentLine.production_batch_item_id == batch_item_id,
            )
        ).scalar()
        if result is None:
            return ZERO
        return result if isinstance(result, Decimal) else Decimal(str(result))

    def reconcile_batch_item(self, batch_item_id: UUID) -> BatchItemReconciliation:
        """
        Compare the ledger's remaining stock with the document-derived figure.

        Raises:
            ItemNotFoundError: Unknown batch item.
        """
        batch_item = self.session.get(ProductionBatchItem, batch_item_id)
        if batch_item is None:
            raise ItemNotFoundError("ProductionBatchItem", str(batch_item_id))

        return BatchItemReconciliation(
            batch_item_id=batch_item.id,
            batch_code=batch_item.batch_code,
            quantity_produced=batch_item.quantity_produced,
            shipped_quantity=self.shipped_quantity(batch_item_id),
            ledger_balance=self.remaining_stock(batch_item_id),
        )

    def stock_summary(
        self,
        item_kind: ItemKind,
        include_inactive: bool = False,
    ) -> list[StockLevel]:
        """One StockLevel per item of the given kind, ordered by code."""
        if ItemKind(item_kind) == ItemKind.PACKAGING:
            model, code_column = PackagingItem, PackagingItem.packaging_code
        else:
            model, code_column = Product, Product.product_code

        stmt = select(model).order_by(code_column)
        if not include_inactive:
            stmt = stmt.where(model.is_active.is_(True))
        items = self.session.execute(stmt).scalars().all()

        balances = self._ledger.balances_for(item_kind, [i.id for i in items])

        return [
            StockLevel(
                item_kind=ItemKind(item_kind),
                item_id=item.id,
                code=getattr(item, code_column.key),
                name=item.name,
                uom=item.base_uom,
                balance=balances[item.id],
            )
            for item in items
        ]

    def available_batch_items(
        self,
        product_id: UUID | None = None,
    ) -> list[BatchItemStock]:
        """
        Batch items with remaining stock above zero, oldest production first.

        This is the list a shipment can draw from.
        """
        stmt = (
            select(ProductionBatchItem, ProductionBatch, Product)
            .join(
                ProductionBatch,
                ProductionBatchItem.production_batch_id == ProductionBatch.id,
            )
            .join(Product, ProductionBatchItem.product_id == Product.id)
            .order_by(ProductionBatch.production_date, ProductionBatchItem.batch_code)
        )
        if product_id is not None:
            stmt = stmt.where(ProductionBatchItem.product_id == product_id)

        rows = self.session.execute(stmt).all()
        remaining = self._ledger.batch_item_balances_for(
            [batch_item.id for batch_item, _, _ in rows]
        )

        return [
            BatchItemStock(
                batch_item_id=batch_item.id,
                batch_code=batch_item.batch_code,
                product_id=product.id,
                product_name=product.name,
                production_date=batch.production_date,
                quantity_produced=batch_item.quantity_produced,
                remaining=remaining[batch_item.id],
                uom=batch_item.uom,
            )
            for batch_item, batch, product in rows
            if remaining[batch_item.id] > ZERO
        ]
