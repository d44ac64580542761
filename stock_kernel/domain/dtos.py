"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable data structures that cross the kernel boundary: workflow
    requests (ReceiptLineRequest, BatchItemRequest, ShipmentLineRequest),
    the ledger append input (MovementSpec), read models (StockMovementRecord,
    StockLevel, BatchItemStock, BatchItemReconciliation,
    ComponentRequirement) and workflow results (ReceiptResult,
    ProductionResult, ShipmentResult).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are
    boundary converters invoked only from selectors and services.

Invariants enforced:
    - Services and callers exchange DTOs, never ORM entities.
    - Quantities are Decimal.

Data flow:
    *Request -> StockWorkflowOrchestrator -> MovementSpec -> LedgerService
    -> StockMovementRecord -> *Result
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from stock_kernel.models.item import ItemKind
from stock_kernel.models.stock_movement import MovementDirection, SourceDocumentType

if TYPE_CHECKING:
    from stock_kernel.models.stock_movement import StockMovement


class WorkflowState(str, Enum):
    """
    Lifecycle of one workflow request.

    RECEIVED -> VALIDATED -> COMMITTED on success.
    RECEIVED -> REJECTED when validation fails (nothing written).
    VALIDATED -> FAILED when the commit fails (everything rolled back).
    """

    RECEIVED = "received"
    VALIDATED = "validated"
    COMMITTED = "committed"
    REJECTED = "rejected"
    FAILED = "failed"


# Requests


@dataclass(frozen=True)
class ReceiptLineRequest:
    """One packaging item on a receipt.  uom defaults to the item's base uom."""

    packaging_item_id: UUID
    quantity: Decimal
    uom: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class BatchItemRequest:
    """One product produced in a batch, identified by its batch/MFD code."""

    batch_code: str
    product_id: UUID
    quantity_produced: Decimal
    uom: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ShipmentLineRequest:
    """Quantity to ship from one production batch item."""

    production_batch_item_id: UUID
    quantity: Decimal
    uom: str | None = None
    notes: str | None = None


# Ledger


@dataclass(frozen=True)
class MovementSpec:
    """
    Input to LedgerService.append().

    Contract:
        quantity is the unsigned magnitude; direction carries the sign.
        batch_item_id is set only for FINISHED_GOODS movements.
    """

    movement_date: date
    item_kind: ItemKind
    item_id: UUID
    quantity: Decimal
    uom: str
    direction: MovementDirection
    source_type: SourceDocumentType
    source_id: UUID
    batch_item_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class StockMovementRecord:
    """Read model of one persisted ledger movement."""

    id: UUID
    movement_date: date
    item_kind: ItemKind
    item_id: UUID
    batch_item_id: UUID | None
    quantity: Decimal
    uom: str
    direction: MovementDirection
    source_type: SourceDocumentType
    source_id: UUID
    notes: str | None
    created_at: datetime | None

    @property
    def signed_quantity(self) -> Decimal:
        if self.direction == MovementDirection.IN:
            return self.quantity
        return -self.quantity

    @classmethod
    def from_model(cls, model: StockMovement) -> StockMovementRecord:
        return cls(
            id=model.id,
            movement_date=model.movement_date,
            item_kind=ItemKind(model.item_kind),
            item_id=model.item_id,
            batch_item_id=model.batch_item_id,
            quantity=model.quantity,
            uom=model.uom,
            direction=MovementDirection(model.direction),
            source_type=SourceDocumentType(model.source_type),
            source_id=model.source_id,
            notes=model.notes,
            created_at=model.created_at,
        )


# Read models


@dataclass(frozen=True)
class ComponentRequirement:
    """Packaging needed to produce a quantity of a product, for one BOM line."""

    packaging_item_id: UUID
    packaging_item_name: str
    required_quantity: Decimal
    uom: str


@dataclass(frozen=True)
class StockLevel:
    """Current ledger balance of one item."""

    item_kind: ItemKind
    item_id: UUID
    code: str
    name: str
    uom: str
    balance: Decimal


@dataclass(frozen=True)
class BatchItemStock:
    """Remaining stock of one production batch item."""

    batch_item_id: UUID
    batch_code: str
    product_id: UUID
    product_name: str
    production_date: date
    quantity_produced: Decimal
    remaining: Decimal
    uom: str


@dataclass(frozen=True)
class BatchItemReconciliation:
    """
    Remaining stock of a batch item derived two ways.

    ledger_balance comes from the stock movements; document_balance is
    quantity_produced minus the sum of its shipment lines.  Both are written
    in the same transaction, so they must agree.
    """

    batch_item_id: UUID
    batch_code: str
    quantity_produced: Decimal
    shipped_quantity: Decimal
    ledger_balance: Decimal

    @property
    def document_balance(self) -> Decimal:
        return self.quantity_produced - self.shipped_quantity

    @property
    def is_consistent(self) -> bool:
        return self.document_balance == self.ledger_balance


# Results


@dataclass(frozen=True)
class ReceiptResult:
    receipt_id: UUID
    receipt_number: str
    line_ids: tuple[UUID, ...]
    movement_ids: tuple[UUID, ...]
    state: WorkflowState = WorkflowState.COMMITTED

    @property
    def is_success(self) -> bool:
        return self.state == WorkflowState.COMMITTED


@dataclass(frozen=True)
class ProductionResult:
    """
    Outcome of produce_batch().

    batch_item_ids follows the order of the request's items.
    """

    production_batch_id: UUID
    batch_item_ids: tuple[UUID, ...]
    movement_ids: tuple[UUID, ...]
    state: WorkflowState = WorkflowState.COMMITTED

    @property
    def is_success(self) -> bool:
        return self.state == WorkflowState.COMMITTED


@dataclass(frozen=True)
class ShipmentResult:
    shipment_id: UUID
    shipment_number: str
    line_ids: tuple[UUID, ...]
    movement_ids: tuple[UUID, ...]
    state: WorkflowState = WorkflowState.COMMITTED

    @property
    def is_success(self) -> bool:
        return self.state == WorkflowState.COMMITTED
