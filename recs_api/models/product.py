"""Product model for the mirrored Ecwid catalog."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recs_api.models.base import Base, JSONType

if TYPE_CHECKING:
    from recs_api.models.store import Store


class Product(Base):
    """Product mirrored from an Ecwid store.

    Rows are replaced wholesale on every sync. ``upsells`` and ``cross_sells``
    hold precomputed Ecwid product ids served to the storefront widget.
    """

    __tablename__ = "products"

    store_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Ecwid's product id
    ecwid_product_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Product data
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    compare_to_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category_ids: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    # Product options (size, color...); non-empty means the product has variants
    options: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )

    # Precomputed recommendations (Ecwid product ids)
    upsells: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    cross_sells: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )

    # Sync tracking
    synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="products",
    )

    __table_args__ = (
        Index(
            "ix_products_store_ecwid_id",
            "store_id",
            "ecwid_product_id",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} ({self.ecwid_product_id})>"
