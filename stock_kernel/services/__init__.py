"""Services for the stock kernel (write side)."""

from stock_kernel.services.ledger_service import LedgerService
from stock_kernel.services.master_data_service import (
    BomLineInfo,
    DestinationInfo,
    MasterDataService,
    PackagingItemInfo,
    ProductInfo,
)
from stock_kernel.services.sufficiency_validator import SufficiencyValidator
from stock_kernel.services.workflow_orchestrator import StockWorkflowOrchestrator

__all__ = [
    "BomLineInfo",
    "DestinationInfo",
    "LedgerService",
    "MasterDataService",
    "PackagingItemInfo",
    "ProductInfo",
    "StockWorkflowOrchestrator",
    "SufficiencyValidator",
]
