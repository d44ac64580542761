"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The data-entry layer must react differently to "fix your input", "you are
short of 12 cartons" and "the database failed".  Parsing messages for that is
fragile, so:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- WorkflowRejectedError          workflow_state = REJECTED
    |   +-- ValidationError
    |   +-- BomNotFoundError
    |   +-- InsufficientStockError
    |   +-- DuplicateLineError
    |
    +-- PersistenceError               workflow_state = FAILED
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- MasterDataError
        +-- DuplicateCodeError
        +-- ItemNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Rejection       | VALIDATION_ERROR            | Malformed / missing request input
                | BOM_NOT_FOUND               | Product has no active BOM lines
                | INSUFFICIENT_STOCK          | Cumulative requirement > balance
                | DUPLICATE_LINE              | Same batch code / batch item twice
----------------|-----------------------------|-----------------------------------------
Commit          | PERSISTENCE_ERROR           | Any failure while committing
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a ledger row
----------------|-----------------------------|-----------------------------------------
Master data     | DUPLICATE_CODE              | Item / destination code already used
                | ITEM_NOT_FOUND              | Referenced master record missing

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        orchestrator.produce_batch(...)
    except InsufficientStockError as e:
        show(e.format_report())            # every short item in one report
    except WorkflowRejectedError as e:
        show(f"{e.code}: {e}")             # actionable, nothing was written
    except PersistenceError:
        show("could not complete operation")  # detail is in operator logs
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from stock_kernel.domain.sufficiency import Shortage


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Rejections (no side effects)


class WorkflowRejectedError(StockKernelError):
    """Base for errors that reject a workflow before anything is written."""

    code: str = "WORKFLOW_REJECTED"
    workflow_state: str = "rejected"


class ValidationError(WorkflowRejectedError):
    """Request input is malformed, missing, or references unusable data."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class BomNotFoundError(WorkflowRejectedError):
    """Product has no active bill-of-materials lines."""

    code: str = "BOM_NOT_FOUND"

    def __init__(self, product_id: str, batch_code: str | None = None):
        self.product_id = product_id
        self.batch_code = batch_code
        where = f" (batch {batch_code})" if batch_code else ""
        super().__init__(
            f"No Bill of Materials found for product {product_id}{where}"
        )


class InsufficientStockError(WorkflowRejectedError):
    """
    Cumulative requirement exceeds the available balance.

    Carries the complete shortage list, one entry per affected item.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortages: Sequence[Shortage]):
        self.shortages = tuple(shortages)
        names = ", ".join(s.item_name for s in self.shortages)
        super().__init__(
            f"Insufficient stock for {len(self.shortages)} item(s): {names}"
        )

    def format_report(self) -> str:
        """Render one consolidated, human-readable shortage report."""
        lines = ["Insufficient stock for the following items:"]
        for s in self.shortages:
            lines.append(
                f"- {s.item_name}: Need {s.required}, "
                f"Available {s.available} (Short: {s.shortage})"
            )
        return "\n".join(lines)


class DuplicateLineError(WorkflowRejectedError):
    """Two lines of the same request share an identifying key."""

    code: str = "DUPLICATE_LINE"

    def __init__(self, key: str, duplicates: Sequence[Any]):
        self.key = key
        self.duplicates = tuple(str(d) for d in duplicates)
        super().__init__(
            f"Duplicate {key} in request: {', '.join(self.duplicates)}"
        )


# Storage failures


class PersistenceError(StockKernelError):
    """
    Storage failed mid-workflow and the transaction was rolled back.

    The message names only the operation; the cause is chained and logged.
    """

    code: str = "PERSISTENCE_ERROR"
    workflow_state: str = "failed"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Could not complete operation: {operation}")


# Immutability


class ImmutabilityError(StockKernelError):
    """Base exception for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted UPDATE or DELETE of an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Master data


class MasterDataError(StockKernelError):
    """Base exception for master data errors."""

    code: str = "MASTER_DATA_ERROR"


class DuplicateCodeError(MasterDataError):
    """A master record with this code already exists."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity_type: str, code_value: str):
        self.entity_type = entity_type
        self.code_value = code_value
        super().__init__(f"{entity_type} already exists: {code_value}")


class ItemNotFoundError(MasterDataError):
    """Referenced master record does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")
