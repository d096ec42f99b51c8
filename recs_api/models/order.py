"""Order model for the mirrored Ecwid order history."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recs_api.models.base import Base, JSONType

if TYPE_CHECKING:
    from recs_api.models.store import Store


class Order(Base):
    """Order mirrored from Ecwid.

    Only the fields needed for co-purchase analysis and the admin order views
    are kept. ``product_ids`` lists the Ecwid product ids of the line items.
    """

    __tablename__ = "orders"

    store_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    ecwid_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)

    product_ids: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )

    total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    payment_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    fulfillment_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # When the order was placed in Ecwid
    order_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="orders",
    )

    __table_args__ = (
        Index(
            "ix_orders_store_ecwid_id",
            "store_id",
            "ecwid_order_id",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number or self.ecwid_order_id}>"
