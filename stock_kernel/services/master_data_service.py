"""
Service layer for master data: packaging items, products, BOM lines and
destinations.

Workflows only ever read master data; this service is how it gets created
and switched on or off.  Returns frozen *Info DTOs instead of ORM entities.
Flushes, never commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.exceptions import (
    DuplicateCodeError,
    ItemNotFoundError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.bom import BomLine
from stock_kernel.models.destination import Destination
from stock_kernel.models.item import ItemKind, PackagingItem, Product
from stock_kernel.services.base import BaseService

logger = get_logger("services.master_data")


@dataclass(frozen=True)
class PackagingItemInfo:
    id: UUID
    packaging_code: str
    name: str
    base_uom: str
    description: str | None
    is_active: bool

    @property
    def kind(self) -> ItemKind:
        return ItemKind.PACKAGING


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    product_code: str
    name: str
    base_uom: str
    description: str | None
    is_active: bool

    @property
    def kind(self) -> ItemKind:
        return ItemKind.FINISHED_GOODS


@dataclass(frozen=True)
class BomLineInfo:
    id: UUID
    product_id: UUID
    packaging_item_id: UUID
    qty_per_unit: Decimal
    uom: str
    is_active: bool


@dataclass(frozen=True)
class DestinationInfo:
    id: UUID
    name: str
    is_active: bool


def _require_text(field: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return str(value).strip()


class MasterDataService(BaseService[PackagingItem]):
    """
    Creates and maintains the reference data the ledger workflows use.

    Codes (packaging_code, product_code, destination name) are unique and
    checked before insert so callers get DuplicateCodeError rather than a
    raw IntegrityError.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # =========================================================================
    # Converters
    # =========================================================================

    @staticmethod
    def _packaging_dto(item: PackagingItem) -> PackagingItemInfo:
        return PackagingItemInfo(
            id=item.id,
            packaging_code=item.packaging_code,
            name=item.name,
            base_uom=item.base_uom,
            description=item.description,
            is_active=item.is_active,
        )

    @staticmethod
    def _product_dto(product: Product) -> ProductInfo:
        return ProductInfo(
            id=product.id,
            product_code=product.product_code,
            name=product.name,
            base_uom=product.base_uom,
            description=product.description,
            is_active=product.is_active,
        )

    @staticmethod
    def _bom_dto(line: BomLine) -> BomLineInfo:
        return BomLineInfo(
            id=line.id,
            product_id=line.product_id,
            packaging_item_id=line.packaging_item_id,
            qty_per_unit=line.qty_per_unit,
            uom=line.uom,
            is_active=line.is_active,
        )

    @staticmethod
    def _destination_dto(destination: Destination) -> DestinationInfo:
        return DestinationInfo(
            id=destination.id,
            name=destination.name,
            is_active=destination.is_active,
        )

    # =========================================================================
    # Packaging items
    # =========================================================================

    def create_packaging_item(
        self,
        packaging_code: str,
        name: str,
        actor_id: UUID,
        base_uom: str = "pcs",
        description: str | None = None,
    ) -> PackagingItemInfo:
        """
        Register a packaging material.

        Raises:
            ValidationError: Blank code or name.
            DuplicateCodeError: packaging_code already used.
        """
        packaging_code = _require_text("packaging_code", packaging_code)
        name = _require_text("name", name)

        existing = self.session.execute(
            select(PackagingItem.id).where(PackagingItem.packaging_code == packaging_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateCodeError("PackagingItem", packaging_code)

        item = PackagingItem(
            packaging_code=packaging_code,
            name=name,
            base_uom=base_uom,
            description=description,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(item)
        self.session.flush()

        logger.info(
            "packaging_item_created",
            extra={"item_id": str(item.id), "packaging_code": packaging_code},
        )
        return self._packaging_dto(item)

    def get_packaging_item(self, item_id: UUID) -> PackagingItemInfo:
        item = self.session.get(PackagingItem, item_id)
        if item is None:
            raise ItemNotFoundError("PackagingItem", str(item_id))
        return self._packaging_dto(item)

    def find_packaging_item_by_code(self, packaging_code: str) -> PackagingItemInfo | None:
        item = self.session.execute(
            select(PackagingItem).where(PackagingItem.packaging_code == packaging_code)
        ).scalar_one_or_none()
        return self._packaging_dto(item) if item is not None else None

    def list_packaging_items(self, active_only: bool = True) -> list[PackagingItemInfo]:
        stmt = select(PackagingItem).order_by(PackagingItem.packaging_code)
        if active_only:
            stmt = stmt.where(PackagingItem.is_active.is_(True))
        return [self._packaging_dto(i) for i in self.session.execute(stmt).scalars()]

    # =========================================================================
    # Products
    # =========================================================================

    def create_product(
        self,
        product_code: str,
        name: str,
        actor_id: UUID,
        base_uom: str = "cartons",
        description: str | None = None,
    ) -> ProductInfo:
        """
        Register a finished-good product.

        Raises:
            ValidationError: Blank code or name.
            DuplicateCodeError: product_code already used.
        """
        product_code = _require_text("product_code", product_code)
        name = _require_text("name", name)

        existing = self.session.execute(
            select(Product.id).where(Product.product_code == product_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateCodeError("Product", product_code)

        product = Product(
            product_code=product_code,
            name=name,
            base_uom=base_uom,
            description=description,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(product)
        self.session.flush()

        logger.info(
            "product_created",
            extra={"product_id": str(product.id), "product_code": product_code},
        )
        return self._product_dto(product)

    def get_product(self, product_id: UUID) -> ProductInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ItemNotFoundError("Product", str(product_id))
        return self._product_dto(product)

    def find_product_by_code(self, product_code: str) -> ProductInfo | None:
        product = self.session.execute(
            select(Product).where(Product.product_code == product_code)
        ).scalar_one_or_none()
        return self._product_dto(product) if product is not None else None

    def list_products(self, active_only: bool = True) -> list[ProductInfo]:
        stmt = select(Product).order_by(Product.product_code)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        return [self._product_dto(p) for p in self.session.execute(stmt).scalars()]

    def set_item_active(
        self,
        item_kind: ItemKind,
        item_id: UUID,
        is_active: bool,
        actor_id: UUID,
    ) -> PackagingItemInfo | ProductInfo:
        """
        Activate or deactivate a packaging item or product.

        Inactive items are refused by new workflows; their ledger history
        and balances are unaffected.
        """
        if ItemKind(item_kind) == ItemKind.PACKAGING:
            model, to_dto = PackagingItem, self._packaging_dto
        else:
            model, to_dto = Product, self._product_dto

        item = self.session.get(model, item_id)
        if item is None:
            raise ItemNotFoundError(model.__name__, str(item_id))

        item.is_active = is_active
        item.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "item_activation_changed",
            extra={
                "item_kind": ItemKind(item_kind).value,
                "item_id": str(item_id),
                "is_active": is_active,
            },
        )
        return to_dto(item)

    # =========================================================================
    # Bill of materials
    # =========================================================================

    def add_bom_line(
        self,
        product_id: UUID,
        packaging_item_id: UUID,
        qty_per_unit: Decimal,
        actor_id: UUID,
        uom: str = "pcs",
    ) -> BomLineInfo:
        """
        Add one component to a product's bill of materials.

        Raises:
            ValidationError: qty_per_unit is not a positive number.
            ItemNotFoundError: Unknown product or packaging item.
            DuplicateCodeError: The product already lists this component.
        """
        try:
            qty = Decimal(str(qty_per_unit))
        except InvalidOperation:
            raise ValidationError(
                "qty_per_unit", f"not a number: {qty_per_unit!r}"
            ) from None
        if not qty.is_finite() or qty <= 0:
            raise ValidationError("qty_per_unit", f"must be positive, got {qty_per_unit}")

        product = self.session.get(Product, product_id)
        if product is None:
            raise ItemNotFoundError("Product", str(product_id))
        packaging = self.session.get(PackagingItem, packaging_item_id)
        if packaging is None:
            raise ItemNotFoundError("PackagingItem", str(packaging_item_id))

        existing = self.session.execute(
            select(BomLine.id).where(
                BomLine.product_id == product_id,
                BomLine.packaging_item_id == packaging_item_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateCodeError(
                "BomLine",
                f"{product.product_code}/{packaging.packaging_code}",
            )

        line = BomLine(
            product_id=product_id,
            packaging_item_id=packaging_item_id,
            qty_per_unit=qty,
            uom=uom,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(line)
        self.session.flush()

        logger.info(
            "bom_line_added",
            extra={
                "product_code": product.product_code,
                "packaging_code": packaging.packaging_code,
                "qty_per_unit": str(qty),
            },
        )
        return self._bom_dto(line)

    def set_bom_line_active(
        self,
        bom_line_id: UUID,
        is_active: bool,
        actor_id: UUID,
    ) -> BomLineInfo:
        line = self.session.get(BomLine, bom_line_id)
        if line is None:
            raise ItemNotFoundError("BomLine", str(bom_line_id))
        line.is_active = is_active
        line.updated_by_id = actor_id
        self.session.flush()
        return self._bom_dto(line)

    def list_bom_lines(self, product_id: UUID, active_only: bool = True) -> list[BomLineInfo]:
        stmt = (
            select(BomLine)
            .join(PackagingItem, BomLine.packaging_item_id == PackagingItem.id)
            .where(BomLine.product_id == product_id)
            .order_by(PackagingItem.packaging_code)
        )
        if active_only:
            stmt = stmt.where(BomLine.is_active.is_(True))
        return [self._bom_dto(b) for b in self.session.execute(stmt).scalars()]

    # =========================================================================
    # Destinations
    # =========================================================================

    def create_destination(self, name: str, actor_id: UUID) -> DestinationInfo:
        """
        Register a shipment destination.

        Raises:
            ValidationError: Blank name.
            DuplicateCodeError: name already used.
        """
        name = _require_text("name", name)

        existing = self.session.execute(
            select(Destination.id).where(Destination.name == name)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateCodeError("Destination", name)

        destination = Destination(name=name, is_active=True, created_by_id=actor_id)
        self.session.add(destination)
        self.session.flush()

        logger.info(
            "destination_created",
            extra={"destination_id": str(destination.id), "destination_name": name},
        )
        return self._destination_dto(destination)

    def set_destination_active(
        self,
        destination_id: UUID,
        is_active: bool,
        actor_id: UUID,
    ) -> DestinationInfo:
        destination = self.session.get(Destination, destination_id)
        if destination is None:
            raise ItemNotFoundError("Destination", str(destination_id))
        destination.is_active = is_active
        destination.updated_by_id = actor_id
        self.session.flush()
        return self._destination_dto(destination)

    def find_destination_by_name(self, name: str) -> DestinationInfo | None:
        destination = self.session.execute(
            select(Destination).where(Destination.name == name)
        ).scalar_one_or_none()
        return self._destination_dto(destination) if destination is not None else None

    def list_destinations(self, active_only: bool = True) -> list[DestinationInfo]:
        stmt = select(Destination).order_by(Destination.name)
        if active_only:
            stmt = stmt.where(Destination.is_active.is_(True))
        return [self._destination_dto(d) for d in self.session.execute(stmt).scalars()]
