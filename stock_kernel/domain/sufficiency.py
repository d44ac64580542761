"""
Sufficiency -- Pure cumulative stock sufficiency math.

Responsibility:
    Given the (item, quantity) requirements of every line of one workflow
    request, accumulate them per item, compare the totals with available
    balances, and report every shortage.  Also detects duplicate line keys.

Architecture position:
    Kernel > Domain -- pure functions, no I/O.  Balances are fetched by
    services.sufficiency_validator and passed in.

Invariants enforced:
    - Checks are cumulative across lines: two lines that each fit but
      together exceed a balance produce one shortage for the combined
      deficit.
    - required == available is sufficient.
    - Output order is deterministic (first appearance in the request).
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Requirement:
    """Quantity of one underlying stock item needed by a request line."""

    key: Hashable
    item_name: str
    quantity: Decimal


@dataclass(frozen=True)
class Shortage:
    """One item whose accumulated requirement exceeds its balance."""

    item_name: str
    required: Decimal
    available: Decimal
    item_id: Hashable | None = None

    @property
    def shortage(self) -> Decimal:
        return self.required - self.available


def accumulate_requirements(requirements: Iterable[Requirement]) -> list[Requirement]:
    """Sum quantities per key, keeping the order keys first appear in."""
    totals: dict[Hashable, Requirement] = {}
    for req in requirements:
        existing = totals.get(req.key)
        if existing is None:
            totals[req.key] = req
        else:
            totals[req.key] = Requirement(
                key=req.key,
                item_name=existing.item_name,
                quantity=existing.quantity + req.quantity,
            )
    return list(totals.values())


def find_shortages(
    accumulated: Sequence[Requirement],
    available: Mapping[Hashable, Decimal],
) -> list[Shortage]:
    """
    Compare accumulated requirements with available balances.

    A key missing from `available` has a balance of zero.
    """
    shortages = []
    for req in accumulated:
        balance = available.get(req.key, Decimal("0"))
        if req.quantity > balance:
            shortages.append(
                Shortage(
                    item_name=req.item_name,
                    required=req.quantity,
                    available=balance,
                    item_id=req.key,
                )
            )
    return shortages


def find_duplicates(keys: Iterable[Hashable]) -> list[Hashable]:
    """Keys that occur more than once, each reported once, in first-seen order."""
    seen: set[Hashable] = set()
    duplicates: list[Hashable] = []
    for key in keys:
        if key in seen:
            if key not in duplicates:
                duplicates.append(key)
        else:
            seen.add(key)
    return duplicates
