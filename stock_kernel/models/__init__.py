"""ORM models for the stock ledger."""

from stock_kernel.models.bom import BomLine
from stock_kernel.models.destination import Destination
from stock_kernel.models.item import ItemKind, PackagingItem, Product
from stock_kernel.models.production import ProductionBatch, ProductionBatchItem
from stock_kernel.models.receipt import Receipt, ReceiptLine
from stock_kernel.models.shipment import Shipment, ShipmentLine
from stock_kernel.models.stock_movement import (
    MovementDirection,
    SourceDocumentType,
    StockMovement,
)

__all__ = [
    "ItemKind",
    "PackagingItem",
    "Product",
    "BomLine",
    "Destination",
    "Receipt",
    "ReceiptLine",
    "ProductionBatch",
    "ProductionBatchItem",
    "Shipment",
    "ShipmentLine",
    "MovementDirection",
    "SourceDocumentType",
    "StockMovement",
]
