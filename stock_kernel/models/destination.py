"""Shipment destinations (reference data, not ledger-relevant)."""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase


class Destination(TrackedBase):
    """Place a shipment is sent to."""

    __tablename__ = "destinations"

    __table_args__ = (
        UniqueConstraint("name", name="uq_destination_name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<Destination {self.name}>"
