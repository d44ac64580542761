"""
SufficiencyValidator -- cumulative stock check for one workflow request.

Responsibility:
    Turns every line of a production or shipment request into
    (stock item, required quantity) pairs, accumulates them per item,
    fetches the balances of exactly those items in one query, and rejects
    the request with every shortage at once.  This is the single place
    where "is there enough stock?" is decided.

Architecture position:
    Kernel > Services.  Reads through BomResolver and BalanceSelector, uses
    the pure math in domain/sufficiency.py.  Never writes.

Invariants enforced:
    - Duplicate line keys are rejected before any balance is read.
    - Requirements are summed across lines before comparison, so two
      lines drawing on the same item cannot each pass on their own.
    - Optionally locks (SELECT ... FOR UPDATE, sorted by id) the master
      rows whose balances are about to be read, so concurrent workflows on
      the same stock serialize.

Failure modes:
    - DuplicateLineError: two lines share a batch code / batch item.
    - BomNotFoundError: a product has no active BOM lines.
    - InsufficientStockError: at least one item is short; carries all of
      them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import (
    BatchItemRequest,
    ComponentRequirement,
    ShipmentLineRequest,
)
from stock_kernel.domain.sufficiency import (
    Requirement,
    accumulate_requirements,
    find_duplicates,
    find_shortages,
)
from stock_kernel.exceptions import DuplicateLineError, InsufficientStockError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import ItemKind, PackagingItem
from stock_kernel.models.production import ProductionBatchItem
from stock_kernel.selectors.balance_selector import BalanceSelector
from stock_kernel.selectors.bom_selector import BomResolver

logger = get_logger("services.sufficiency")


class SufficiencyValidator:
    """
    Validates a whole request against current ledger balances.

    Args:
        session: Caller's session; balances are read inside its transaction.
        lock_rows: Take row locks on the master rows before reading balances.
    """

    def __init__(self, session: Session, lock_rows: bool = True):
        self._session = session
        self._lock_rows = lock_rows
        self._bom = BomResolver(session)
        self._balances = BalanceSelector(session)

    def _lock(self, model, ids: Iterable[UUID]) -> None:
        if not self._lock_rows:
            return
        ordered = sorted(set(ids), key=str)
        if not ordered:
            return
        self._session.execute(
            select(model.id)
            .where(model.id.in_(ordered))
            .order_by(model.id)
            .with_for_update()
        ).all()
        logger.debug(
            "balance_rows_locked",
            extra={"table": model.__tablename__, "row_count": len(ordered)},
        )

    def validate_production(
        self,
        items: Sequence[BatchItemRequest],
    ) -> list[list[ComponentRequirement]]:
        """
        Check that all packaging needed by a production request is in stock.

        Returns:
            The resolved component requirements, one list per request item
            in request order, for the caller to turn into movements.
        """
        duplicates = find_duplicates(item.batch_code for item in items)
        if duplicates:
            raise DuplicateLineError("batch_code", duplicates)

        per_item = [
            self._bom.requirements_for(
                item.product_id,
                item.quantity_produced,
                batch_code=item.batch_code,
            )
            for item in items
        ]

        accumulated = accumulate_requirements(
            Requirement(
                key=component.packaging_item_id,
                item_name=component.packaging_item_name,
                quantity=component.required_quantity,
            )
            for components in per_item
            for component in components
        )

        keys = [req.key for req in accumulated]
        self._lock(PackagingItem, keys)
        available = self._balances.current_stocks(ItemKind.PACKAGING, keys)

        self._raise_on_shortage(accumulated, available, "production")
        return per_item

    def validate_shipment(
        self,
        lines: Sequence[ShipmentLineRequest],
        item_names: Mapping[UUID, str],
    ) -> dict[UUID, Decimal]:
        """
        Check that no shipment line exceeds its batch item's remaining stock.

        Args:
            lines: Shipment lines with positive quantities.
            item_names: Display name per batch item id, used in shortages.

        Returns:
            Remaining stock per batch item before the shipment.
        """
        duplicates = find_duplicates(line.production_batch_item_id for line in lines)
        if duplicates:
            raise DuplicateLineError("production_batch_item_id", duplicates)

        accumulated = accumulate_requirements(
            Requirement(
                key=line.production_batch_item_id,
                item_name=item_names.get(
                    line.production_batch_item_id,
                    str(line.production_batch_item_id),
                ),
                quantity=line.quantity,
            )
            for line in lines
        )

        keys = [req.key for req in accumulated]
        self._lock(ProductionBatchItem, keys)
        available = self._balances.remaining_stocks(keys)

        self._raise_on_shortage(accumulated, available, "shipment")
        return available

    def _raise_on_shortage(
        self,
        accumulated: Sequence[Requirement],
        available: Mapping[UUID, Decimal],
        workflow: str,
    ) -> None:
        shortages = find_shortages(accumulated, available)
        if shortages:
            logger.info(
                "sufficiency_check_failed",
                extra={
                    "workflow": workflow,
                    "shortage_count": len(shortages),
                    "items": [s.item_name for s in shortages],
                },
            )
            raise InsufficientStockError(shortages)

        logger.debug(
            "sufficiency_check_passed",
            extra={"workflow": workflow, "item_count": len(accumulated)},
        )
