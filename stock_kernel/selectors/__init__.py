"""Read-only selectors over the stock ledger and master data."""

from stock_kernel.selectors.balance_selector import BalanceSelector
from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.bom_selector import BomResolver
from stock_kernel.selectors.ledger_selector import LedgerSelector

__all__ = [
    "BaseSelector",
    "LedgerSelector",
    "BalanceSelector",
    "BomResolver",
]
