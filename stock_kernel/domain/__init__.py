"""Pure domain layer: DTOs and sufficiency math."""

from stock_kernel.domain.dtos import (
    BatchItemReconciliation,
    BatchItemRequest,
    BatchItemStock,
    ComponentRequirement,
    MovementSpec,
    ProductionResult,
    ReceiptLineRequest,
    ReceiptResult,
    ShipmentLineRequest,
    ShipmentResult,
    StockLevel,
    StockMovementRecord,
    WorkflowState,
)
from stock_kernel.domain.sufficiency import (
    Requirement,
    Shortage,
    accumulate_requirements,
    find_duplicates,
    find_shortages,
)

__all__ = [
    "WorkflowState",
    "ReceiptLineRequest",
    "BatchItemRequest",
    "ShipmentLineRequest",
    "MovementSpec",
    "StockMovementRecord",
    "ComponentRequirement",
    "StockLevel",
    "BatchItemStock",
    "BatchItemReconciliation",
    "ReceiptResult",
    "ProductionResult",
    "ShipmentResult",
    "Requirement",
    "Shortage",
    "accumulate_requirements",
    "find_shortages",
    "find_duplicates",
]
