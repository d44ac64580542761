"""
Tests for LedgerSelector.

Balances are the only stock figures the system has, so they are checked
against an independent sum over the movement list, not only against
hand-computed numbers.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from stock_kernel.domain.dtos import MovementSpec
from stock_kernel.models.item import ItemKind
from stock_kernel.models.stock_movement import MovementDirection, SourceDocumentType
from stock_kernel.services.ledger_service import LedgerService


def _append(session, actor_id, item_id, quantity, direction, movement_date=date(2025, 8, 1),
            source_type=SourceDocumentType.RECEIPT, source_id=None):
    return LedgerService(session).append(
        MovementSpec(
            movement_date=movement_date,
            item_kind=ItemKind.PACKAGING,
            item_id=item_id,
            quantity=Decimal(quantity),
            uom="pcs",
            direction=direction,
            source_type=source_type,
            source_id=source_id or uuid4(),
        ),
        actor_id,
    )


class TestBalance:

    def test_zero_without_movements(self, ledger_selector):
        assert ledger_selector.balance(ItemKind.PACKAGING, uuid4()) == Decimal("0")

    def test_in_minus_out(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        _append(session, test_actor_id, pouch.id, "1000", MovementDirection.IN)
        _append(session, test_actor_id, pouch.id, "250", MovementDirection.OUT)
        _append(session, test_actor_id, pouch.id, "0.5", MovementDirection.IN)
        session.commit()

        assert ledger_selector.balance(ItemKind.PACKAGING, pouch.id) == Decimal("750.5")

    def test_matches_independent_sum(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        steps = [("100", "in"), ("30", "out"), ("45", "in"), ("15", "out"), ("12.25", "out")]
        for qty, direction in steps:
            _append(session, test_actor_id, pouch.id, qty, MovementDirection(direction))
        session.commit()

        movements = ledger_selector.list_movements(item_kind=ItemKind.PACKAGING, item_id=pouch.id)
        independent = sum((m.signed_quantity for m in movements), Decimal("0"))

        assert len(movements) == len(steps)
        assert ledger_selector.balance(ItemKind.PACKAGING, pouch.id) == independent

    def test_item_kind_separates_ids(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        _append(session, test_actor_id, pouch.id, "10", MovementDirection.IN)
        session.commit()

        assert ledger_selector.balance(ItemKind.FINISHED_GOODS, pouch.id) == Decimal("0")

    def test_reading_twice_is_idempotent(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        _append(session, test_actor_id, pouch.id, "10", MovementDirection.IN)
        session.commit()

        first = ledger_selector.balance(ItemKind.PACKAGING, pouch.id)
        second = ledger_selector.balance(ItemKind.PACKAGING, pouch.id)

        assert first == second == Decimal("10")
        assert len(ledger_selector.list_movements(item_id=pouch.id)) == 1


class TestBalancesFor:

    def test_every_requested_id_present(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        carton = create_packaging_item("CTN50")
        _append(session, test_actor_id, pouch.id, "40", MovementDirection.IN)
        session.commit()

        balances = ledger_selector.balances_for(ItemKind.PACKAGING, [pouch.id, carton.id])

        assert balances == {pouch.id: Decimal("40"), carton.id: Decimal("0")}

    def test_empty_request(self, ledger_selector):
        assert ledger_selector.balances_for(ItemKind.PACKAGING, []) == {}

    def test_batch_item_balances_default_zero(self, ledger_selector):
        batch_item_id = uuid4()
        assert ledger_selector.batch_item_balances_for([batch_item_id]) == {
            batch_item_id: Decimal("0"),
        }


class TestListMovements:

    def test_filters(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        receipt_id = uuid4()
        _append(session, test_actor_id, pouch.id, "100", MovementDirection.IN,
                movement_date=date(2025, 8, 1), source_id=receipt_id)
        _append(session, test_actor_id, pouch.id, "20", MovementDirection.OUT,
                movement_date=date(2025, 8, 5), source_type=SourceDocumentType.PRODUCTION)
        _append(session, test_actor_id, pouch.id, "30", MovementDirection.OUT,
                movement_date=date(2025, 8, 9), source_type=SourceDocumentType.PRODUCTION)
        session.commit()

        outs = ledger_selector.list_movements(direction=MovementDirection.OUT)
        in_range = ledger_selector.list_movements(date_from=date(2025, 8, 2), date_to=date(2025, 8, 5))
        from_receipt = ledger_selector.movements_for_document(SourceDocumentType.RECEIPT, receipt_id)

        assert [m.quantity for m in outs] == [Decimal("20"), Decimal("30")]
        assert [m.movement_date for m in in_range] == [date(2025, 8, 5)]
        assert len(from_receipt) == 1
        assert from_receipt[0].source_id == receipt_id

    def test_ordered_by_date(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        _append(session, test_actor_id, pouch.id, "1", MovementDirection.IN, movement_date=date(2025, 8, 9))
        _append(session, test_actor_id, pouch.id, "2", MovementDirection.IN, movement_date=date(2025, 8, 1))
        session.commit()

        dates = [m.movement_date for m in ledger_selector.list_movements(item_id=pouch.id)]

        assert dates == [date(2025, 8, 1), date(2025, 8, 9)]

    def test_get_movement(self, session, ledger_selector, create_packaging_item, test_actor_id):
        pouch = create_packaging_item("STP-CCO-50")
        record = _append(session, test_actor_id, pouch.id, "7", MovementDirection.IN)
        session.commit()

        assert ledger_selector.get_movement(record.id).quantity == Decimal("7")
        assert ledger_selector.get_movement(uuid4()) is None
