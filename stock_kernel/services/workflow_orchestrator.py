"""
StockWorkflowOrchestrator -- the three stock-changing workflows.

Responsibility:
    Runs record_receipt, produce_batch and ship_batch_items end to end:
    request checks, master data lookups, sufficiency validation, then
    document rows and ledger movements written and committed as one
    transaction.

Architecture position:
    Kernel > Services -- imperative shell, owns the transaction boundary.
    Delegates reads to selectors, sufficiency to SufficiencyValidator and
    movement writes to LedgerService.

Workflow states:
    RECEIVED -> VALIDATED -> COMMITTED
    RECEIVED -> REJECTED            (typed WorkflowRejectedError, nothing written)
    RECEIVED -> VALIDATED -> FAILED (PersistenceError, everything rolled back)
    RECEIVED -> FAILED              (PersistenceError, storage failed during reads)

Invariants enforced:
    - A receipt, batch or shipment never exists without its full set of
      movements, and no movement exists without its document.
    - Every stock check of a request is cumulative and runs once, before
      any write.
    - Production writes, per batch item, one outbound packaging movement per
      BOM component and one inbound finished-goods movement.

Failure modes:
    - ValidationError: malformed request, unknown or inactive master data,
      document number or batch code already recorded.
    - DuplicateLineError / BomNotFoundError / InsufficientStockError: from
      SufficiencyValidator.
    - PersistenceError: any failure after validation, or a storage error
      (lock timeout, lost connection) while validating.  The cause is
      chained and logged with its traceback.

Usage::

    orchestrator = StockWorkflowOrchestrator(session)
    result = orchestrator.produce_batch(
        production_date=date(2025, 8, 22),
        items=[BatchItemRequest("MFD-250822-A", product_id, Decimal("10"))],
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import (
    BatchItemRequest,
    ComponentRequirement,
    MovementSpec,
    ProductionResult,
    ReceiptLineRequest,
    ReceiptResult,
    ShipmentLineRequest,
    ShipmentResult,
    WorkflowState,
)
from stock_kernel.exceptions import (
    PersistenceError,
    ValidationError,
    WorkflowRejectedError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.destination import Destination
from stock_kernel.models.item import ItemKind, PackagingItem, Product
from stock_kernel.models.production import ProductionBatch, ProductionBatchItem
from stock_kernel.models.receipt import Receipt, ReceiptLine
from stock_kernel.models.shipment import Shipment, ShipmentLine
from stock_kernel.models.stock_movement import MovementDirection, SourceDocumentType
from stock_kernel.services.ledger_service import LedgerService
from stock_kernel.services.sufficiency_validator import SufficiencyValidator

logger = get_logger("services.workflow")

PlanT = TypeVar("PlanT")
ResultT = TypeVar("ResultT")


# Validated plans handed from the validation phase to the commit phase.


@dataclass(frozen=True)
class _ReceiptPlan:
    receipt_number: str
    receipt_date: date
    supplier_name: str | None
    delivery_note_ref: str | None
    notes: str | None
    lines: tuple[ReceiptLineRequest, ...]
    item_names: dict[UUID, str]


@dataclass(frozen=True)
class _ProductionPlan:
    production_date: date
    po_number: str | None
    notes: str | None
    items: tuple[BatchItemRequest, ...]
    components: tuple[tuple[ComponentRequirement, ...], ...]


@dataclass(frozen=True)
class _ShipmentPlan:
    shipment_number: str
    shipment_date: date
    destination_id: UUID
    delivery_note_ref: str | None
    notes: str | None
    lines: tuple[ShipmentLineRequest, ...]
    batch_items: dict[UUID, tuple[str, UUID]]


# Request checks


def _require_text(field: str, value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_date(field: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(field, f"must be a date, got {value!r}")


def _require_quantity(field: str, value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(field, f"must be a number, got {value!r}")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(field, f"must be a number, got {value!r}") from None
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError(field, f"must be positive, got {value}")
    return quantity


def _require_lines(field: str, lines: Sequence[Any] | None) -> tuple[Any, ...]:
    if not lines:
        raise ValidationError(field, "at least one line is required")
    return tuple(lines)


class StockWorkflowOrchestrator:
    """
    Entry point for receipts, production and shipments.

    Contract:
        Each public method runs inside the caller's Session and ends it with
        exactly one commit (success) or one rollback (rejection or failure).
        Work the caller left pending in the session is committed or
        discarded along with it.

    Args:
        session: SQLAlchemy session owned by the caller.
        lock_balance_rows: Lock the master rows whose balances are checked
            (SELECT ... FOR UPDATE) before reading them.
        finished_goods_uom: Unit for batch items that do not name one.
    """

    def __init__(
        self,
        session: Session,
        lock_balance_rows: bool = True,
        finished_goods_uom: str = "cartons",
    ):
        self._session = session
        self._ledger = LedgerService(session)
        self._validator = SufficiencyValidator(session, lock_rows=lock_balance_rows)
        self._finished_goods_uom = finished_goods_uom

    # =========================================================================
    # Workflow runner
    # =========================================================================

    def _execute(
        self,
        workflow: str,
        document_ref: str | None,
        actor_id: UUID,
        validate: Callable[[], PlanT],
        commit: Callable[[PlanT], ResultT],
    ) -> ResultT:
        with LogContext.bind(
            workflow=workflow,
            actor_id=str(actor_id) if actor_id is not None else None,
            document_ref=document_ref,
        ):
            logger.info("workflow_received", extra={"state": WorkflowState.RECEIVED})

            try:
                if actor_id is None:
                    raise ValidationError("actor_id", "is required")
                plan = validate()
            except WorkflowRejectedError as exc:
                self._session.rollback()
                logger.warning(
                    "workflow_rejected",
                    extra={
                        "state": WorkflowState.REJECTED,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                raise
            except SQLAlchemyError as exc:
                # Storage failed while reading (balances, locks, lookups)
                self._session.rollback()
                logger.error(
                    "workflow_failed",
                    extra={"state": WorkflowState.FAILED, "phase": "validation"},
                    exc_info=True,
                )
                raise PersistenceError(workflow.replace("_", " ")) from exc
            except Exception:
                self._session.rollback()
                logger.error("workflow_validation_error", exc_info=True)
                raise

            logger.info("workflow_validated", extra={"state": WorkflowState.VALIDATED})

            try:
                result = commit(plan)
                self._session.commit()
            except Exception as exc:
                self._session.rollback()
                logger.error(
                    "workflow_failed",
                    extra={"state": WorkflowState.FAILED},
                    exc_info=True,
                )
                raise PersistenceError(workflow.replace("_", " ")) from exc

            logger.info(
                "workflow_committed",
                extra={
                    "state": WorkflowState.COMMITTED,
                    "movement_count": len(result.movement_ids),
                },
            )
            return result

    def _append(self, spec: MovementSpec, actor_id: UUID) -> UUID:
        return self._ledger.append(spec, actor_id).id

    # =========================================================================
    # Receipts
    # =========================================================================

    def record_receipt(
        self,
        receipt_number: str,
        receipt_date: date,
        supplier_name: str | None,
        lines: Sequence[ReceiptLineRequest],
        actor_id: UUID,
        delivery_note_ref: str | None = None,
        notes: str | None = None,
    ) -> ReceiptResult:
        """
        Record packaging received from a supplier.

        Writes the receipt, its lines and one inbound packaging movement per
        line.

        Raises:
            ValidationError: Blank or already recorded receipt number, no
                lines, unknown/inactive packaging item, non-positive quantity.
            PersistenceError: The commit failed; nothing was written.
        """

        def validate() -> _ReceiptPlan:
            number = _require_text("receipt_number", receipt_number)
            when = _require_date("receipt_date", receipt_date)
            requested = _require_lines("lines", lines)

            normalized = []
            for i, line in enumerate(requested):
                if line.packaging_item_id is None:
                    raise ValidationError(f"lines[{i}].packaging_item_id", "is required")
                normalized.append(
                    replace(
                        line,
                        quantity=_require_quantity(f"lines[{i}].quantity", line.quantity),
                    )
                )

            exists = self._session.execute(
                select(Receipt.id).where(Receipt.receipt_number == number)
            ).scalar_one_or_none()
            if exists is not None:
                raise ValidationError("receipt_number", f"already recorded: {number}")

            items = self._load_active(
                PackagingItem,
                [line.packaging_item_id for line in normalized],
                "packaging_item_id",
            )

            final_lines = tuple(
                replace(line, uom=line.uom or items[line.packaging_item_id].base_uom)
                for line in normalized
            )

            return _ReceiptPlan(
                receipt_number=number,
                receipt_date=when,
                supplier_name=_optional_text(supplier_name),
                delivery_note_ref=_optional_text(delivery_note_ref),
                notes=notes,
                lines=final_lines,
                item_names={item_id: item.name for item_id, item in items.items()},
            )

        def commit(plan: _ReceiptPlan) -> ReceiptResult:
            receipt = Receipt(
                receipt_number=plan.receipt_number,
                receipt_date=plan.receipt_date,
                supplier_name=plan.supplier_name,
                delivery_note_ref=plan.delivery_note_ref,
                notes=plan.notes,
                created_by_id=actor_id,
            )
            self._session.add(receipt)
            self._session.flush()

            line_ids = []
            movement_ids = []
            for number, line in enumerate(plan.lines, start=1):
                receipt_line = ReceiptLine(
                    receipt_id=receipt.id,
                    line_number=number,
                    packaging_item_id=line.packaging_item_id,
                    quantity=line.quantity,
                    uom=line.uom,
                    notes=line.notes,
                    created_by_id=actor_id,
                )
                self._session.add(receipt_line)
                self._session.flush()
                line_ids.append(receipt_line.id)

                movement_ids.append(
                    self._append(
                        MovementSpec(
                            movement_date=plan.receipt_date,
                            item_kind=ItemKind.PACKAGING,
                            item_id=line.packaging_item_id,
                            quantity=line.quantity,
                            uom=line.uom,
                            direction=MovementDirection.IN,
                            source_type=SourceDocumentType.RECEIPT,
                            source_id=receipt.id,
                            notes=(
                                f"Receipt {plan.receipt_number} - "
                                f"{plan.item_names[line.packaging_item_id]}"
                            ),
                        ),
                        actor_id,
                    )
                )

            return ReceiptResult(
                receipt_id=receipt.id,
                receipt_number=plan.receipt_number,
                line_ids=tuple(line_ids),
                movement_ids=tuple(movement_ids),
            )

        return self._execute(
            "record_receipt",
            _optional_text(receipt_number),
            actor_id,
            validate,
            commit,
        )

    # =========================================================================
    # Production
    # =========================================================================

    def produce_batch(
        self,
        production_date: date,
        items: Sequence[BatchItemRequest],
        actor_id: UUID,
        po_number: str | None = None,
        notes: str | None = None,
    ) -> ProductionResult:
        """
        Record a production batch, consuming packaging per BOM.

        Per item: one outbound movement per active BOM component
        (qty_per_unit x quantity_produced) and one inbound finished-goods
        movement tied to the new batch item.

        Raises:
            ValidationError: Malformed request, unknown/inactive product,
                batch code already recorded.
            DuplicateLineError: Same batch code twice in the request.
            BomNotFoundError: A product has no active BOM lines.
            InsufficientStockError: Cumulative packaging need exceeds stock.
            PersistenceError: The commit failed; nothing was written.
        """

        def validate() -> _ProductionPlan:
            when = _require_date("production_date", production_date)
            requested = _require_lines("items", items)

            normalized = []
            for i, item in enumerate(requested):
                if item.product_id is None:
                    raise ValidationError(f"items[{i}].product_id", "is required")
                normalized.append(
                    replace(
                        item,
                        batch_code=_require_text(f"items[{i}].batch_code", item.batch_code),
                        quantity_produced=_require_quantity(
                            f"items[{i}].quantity_produced", item.quantity_produced,
                        ),
                        uom=item.uom or self._finished_goods_uom,
                    )
                )

            codes = sorted({item.batch_code for item in normalized})
            recorded = self._session.execute(
                select(ProductionBatchItem.batch_code)
                .where(ProductionBatchItem.batch_code.in_(codes))
                .order_by(ProductionBatchItem.batch_code)
            ).scalars().all()
            if recorded:
                raise ValidationError("batch_code", f"already recorded: {', '.join(recorded)}")

            self._load_active(
                Product,
                [item.product_id for item in normalized],
                "product_id",
            )

            components = self._validator.validate_production(normalized)

            return _ProductionPlan(
                production_date=when,
                po_number=_optional_text(po_number),
                notes=notes,
                items=tuple(normalized),
                components=tuple(tuple(c) for c in components),
            )

        def commit(plan: _ProductionPlan) -> ProductionResult:
            batch = ProductionBatch(
                production_date=plan.production_date,
                po_number=plan.po_number,
                notes=plan.notes,
                created_by_id=actor_id,
            )
            self._session.add(batch)
            self._session.flush()

            batch_item_ids = []
            movement_ids = []
            for number, (item, components) in enumerate(
                zip(plan.items, plan.components), start=1,
            ):
                batch_item = ProductionBatchItem(
                    production_batch_id=batch.id,
                    line_number=number,
                    batch_code=item.batch_code,
                    product_id=item.product_id,
                    quantity_produced=item.quantity_produced,
                    uom=item.uom,
                    notes=item.notes,
                    created_by_id=actor_id,
                )
                self._session.add(batch_item)
                self._session.flush()
                batch_item_ids.append(batch_item.id)

                for component in components:
                    movement_ids.append(
                        self._append(
                            MovementSpec(
                                movement_date=plan.production_date,
                                item_kind=ItemKind.PACKAGING,
                                item_id=component.packaging_item_id,
                                quantity=component.required_quantity,
                                uom=component.uom,
                                direction=MovementDirection.OUT,
                                source_type=SourceDocumentType.PRODUCTION,
                                source_id=batch.id,
                                notes=f"Production consumption for batch {item.batch_code}",
                            ),
                            actor_id,
                        )
                    )

                movement_ids.append(
                    self._append(
                        MovementSpec(
                            movement_date=plan.production_date,
                            item_kind=ItemKind.FINISHED_GOODS,
                            item_id=item.product_id,
                            quantity=item.quantity_produced,
                            uom=item.uom,
                            direction=MovementDirection.IN,
                            source_type=SourceDocumentType.PRODUCTION,
                            source_id=batch.id,
                            batch_item_id=batch_item.id,
                            notes=f"Production output for batch {item.batch_code}",
                        ),
                        actor_id,
                    )
                )

            return ProductionResult(
                production_batch_id=batch.id,
                batch_item_ids=tuple(batch_item_ids),
                movement_ids=tuple(movement_ids),
            )

        document_ref = ", ".join(
            str(item.batch_code) for item in (items or ()) if item.batch_code
        ) or None
        return self._execute("produce_batch", document_ref, actor_id, validate, commit)

    # =========================================================================
    # Shipments
    # =========================================================================

    def ship_batch_items(
        self,
        shipment_number: str,
        shipment_date: date,
        destination_id: UUID,
        lines: Sequence[ShipmentLineRequest],
        actor_id: UUID,
        delivery_note_ref: str | None = None,
        notes: str | None = None,
    ) -> ShipmentResult:
        """
        Ship finished goods out of specific production batch items.

        Writes the shipment, its lines and one outbound finished-goods
        movement per line.

        Raises:
            ValidationError: Malformed request, unknown/inactive destination,
                unknown batch item, shipment number already recorded.
            DuplicateLineError: Same batch item on two lines.
            InsufficientStockError: A line exceeds its batch item's remaining
                stock.
            PersistenceError: The commit failed; nothing was written.
        """

        def validate() -> _ShipmentPlan:
            number = _require_text("shipment_number", shipment_number)
            when = _require_date("shipment_date", shipment_date)
            if destination_id is None:
                raise ValidationError("destination_id", "is required")
            requested = _require_lines("lines", lines)

            normalized = []
            for i, line in enumerate(requested):
                if line.production_batch_item_id is None:
                    raise ValidationError(
                        f"lines[{i}].production_batch_item_id", "is required",
                    )
                normalized.append(
                    replace(
                        line,
                        quantity=_require_quantity(f"lines[{i}].quantity", line.quantity),
                    )
                )

            exists = self._session.execute(
                select(Shipment.id).where(Shipment.shipment_number == number)
            ).scalar_one_or_none()
            if exists is not None:
                raise ValidationError("shipment_number", f"already recorded: {number}")

            self._load_active(Destination, [destination_id], "destination_id")

            ids = list(dict.fromkeys(line.production_batch_item_id for line in normalized))
            rows = self._session.execute(
                select(ProductionBatchItem, Product)
                .join(Product, ProductionBatchItem.product_id == Product.id)
                .where(ProductionBatchItem.id.in_(ids))
            ).all()
            found = {batch_item.id: (batch_item, product) for batch_item, product in rows}
            missing = [str(i) for i in ids if i not in found]
            if missing:
                raise ValidationError(
                    "production_batch_item_id",
                    f"unknown batch item: {', '.join(missing)}",
                )

            item_names = {
                batch_item_id: f"{batch_item.batch_code} ({product.name})"
                for batch_item_id, (batch_item, product) in found.items()
            }
            self._validator.validate_shipment(normalized, item_names)

            final_lines = tuple(
                replace(
                    line,
                    uom=line.uom or found[line.production_batch_item_id][0].uom,
                )
                for line in normalized
            )

            return _ShipmentPlan(
                shipment_number=number,
                shipment_date=when,
                destination_id=destination_id,
                delivery_note_ref=_optional_text(delivery_note_ref),
                notes=notes,
                lines=final_lines,
                batch_items={
                    batch_item_id: (batch_item.batch_code, batch_item.product_id)
                    for batch_item_id, (batch_item, _) in found.items()
                },
            )

        def commit(plan: _ShipmentPlan) -> ShipmentResult:
            shipment = Shipment(
                shipment_number=plan.shipment_number,
                shipment_date=plan.shipment_date,
                destination_id=plan.destination_id,
                delivery_note_ref=plan.delivery_note_ref,
                notes=plan.notes,
                created_by_id=actor_id,
            )
            self._session.add(shipment)
            self._session.flush()

            line_ids = []
            movement_ids = []
            for number, line in enumerate(plan.lines, start=1):
                shipment_line = ShipmentLine(
                    shipment_id=shipment.id,
                    line_number=number,
                    production_batch_item_id=line.production_batch_item_id,
                    quantity=line.quantity,
                    uom=line.uom,
                    notes=line.notes,
                    created_by_id=actor_id,
                )
                self._session.add(shipment_line)
                self._session.flush()
                line_ids.append(shipment_line.id)

                batch_code, product_id = plan.batch_items[line.production_batch_item_id]
                movement_ids.append(
                    self._append(
                        MovementSpec(
                            movement_date=plan.shipment_date,
                            item_kind=ItemKind.FINISHED_GOODS,
                            item_id=product_id,
                            quantity=line.quantity,
                            uom=line.uom,
                            direction=MovementDirection.OUT,
                            source_type=SourceDocumentType.SHIPMENT,
                            source_id=shipment.id,
                            batch_item_id=line.production_batch_item_id,
                            notes=f"Shipment {plan.shipment_number} - Batch {batch_code}",
                        ),
                        actor_id,
                    )
                )

            return ShipmentResult(
                shipment_id=shipment.id,
                shipment_number=plan.shipment_number,
                line_ids=tuple(line_ids),
                movement_ids=tuple(movement_ids),
            )

        return self._execute(
            "ship_batch_items",
            _optional_text(shipment_number),
            actor_id,
            validate,
            commit,
        )

    # =========================================================================
    # Master data lookups
    # =========================================================================

    def _load_active(self, model, ids: Sequence[UUID], field: str) -> dict[UUID, Any]:
        """
        Load master rows by id, requiring each to exist and be active.

        Raises:
            ValidationError: Naming every unknown or inactive id.
        """
        wanted = list(dict.fromkeys(ids))
        rows = self._session.execute(
            select(model).where(model.id.in_(wanted))
        ).scalars().all()
        found = {row.id: row for row in rows}

        missing = [str(i) for i in wanted if i not in found]
        if missing:
            raise ValidationError(
                field,
                f"unknown {model.__tablename__}: {', '.join(missing)}",
            )

        inactive = [str(i) for i in wanted if not found[i].is_active]
        if inactive:
            raise ValidationError(
                field,
                f"inactive {model.__tablename__}: {', '.join(inactive)}",
            )
        return found
