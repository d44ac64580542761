"""
Stock Kernel - packaging and production stock ledger.

An append-only stock movement ledger with:
- Derived (never stored) item and batch balances
- Cross-line material sufficiency checks
- Atomic receipt, production and shipment workflows
- ORM and database-level immutability of posted documents
"""

__version__ = "0.1.0"
