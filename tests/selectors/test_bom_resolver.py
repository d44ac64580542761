"""
Tests for BomResolver: product quantity -> packaging requirements.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.exceptions import BomNotFoundError
from stock_kernel.selectors.bom_selector import BomResolver


class TestRequirementsFor:

    def test_scales_by_quantity(self, session, coconut_catalog):
        resolver = BomResolver(session)

        reqs = resolver.requirements_for(coconut_catalog["ctn50"].id, Decimal("10"))

        by_item = {r.packaging_item_id: r.required_quantity for r in reqs}
        assert by_item == {
            coconut_catalog["pouch"].id: Decimal("500"),
            coconut_catalog["carton_50"].id: Decimal("10"),
        }

    def test_ordered_by_packaging_code(self, session, coconut_catalog):
        reqs = BomResolver(session).requirements_for(coconut_catalog["ctn24"].id, Decimal("1"))

        assert [r.packaging_item_name for r in reqs] == ["Carton 24", "Standing pouch coconut"]

    def test_fractional_quantities(self, session, create_packaging_item, create_product):
        tape = create_packaging_item("TAPE", "Sealing tape", base_uom="m")
        product = create_product("CCO-PACK", [(tape.id, "0.75")])

        (req,) = BomResolver(session).requirements_for(product.id, Decimal("4"))

        assert req.required_quantity == Decimal("3")

    def test_no_bom(self, session, create_product):
        product = create_product("CCO-NOBOM")

        with pytest.raises(BomNotFoundError) as exc_info:
            BomResolver(session).requirements_for(product.id, Decimal("1"), batch_code="MFD-X")

        assert exc_info.value.product_id == str(product.id)
        assert exc_info.value.batch_code == "MFD-X"

    def test_unknown_product(self, session):
        with pytest.raises(BomNotFoundError):
            BomResolver(session).requirements_for(uuid4(), Decimal("1"))


class TestInactiveBomLines:
    """An inactive BOM line is as good as absent."""

    def test_inactive_line_skipped(self, session, master_data, coconut_catalog, test_actor_id):
        product = coconut_catalog["ctn50"]
        carton_line = next(
            line for line in master_data.list_bom_lines(product.id)
            if line.packaging_item_id == coconut_catalog["carton_50"].id
        )
        master_data.set_bom_line_active(carton_line.id, False, test_actor_id)
        session.commit()

        reqs = BomResolver(session).requirements_for(product.id, Decimal("2"))

        assert [r.packaging_item_id for r in reqs] == [coconut_catalog["pouch"].id]

    def test_all_lines_inactive(self, session, master_data, coconut_catalog, test_actor_id):
        product = coconut_catalog["ctn24"]
        for line in master_data.list_bom_lines(product.id):
            master_data.set_bom_line_active(line.id, False, test_actor_id)
        session.commit()

        resolver = BomResolver(session)

        assert not resolver.has_bom(product.id)
        with pytest.raises(BomNotFoundError):
            resolver.requirements_for(product.id, Decimal("1"))
