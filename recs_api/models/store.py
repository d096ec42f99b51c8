"""Store model for Ecwid merchant stores that installed the add-on."""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recs_api.models.base import Base, JSONType

if TYPE_CHECKING:
    from recs_api.models.category import Category
    from recs_api.models.order import Order
    from recs_api.models.product import Product


class Store(Base):
    """An Ecwid store identified by its platform store id.

    OAuth tokens are Fernet-encrypted at rest (see ``core.encryption``).
    A store without an access token is registered but not authenticated.
    """

    __tablename__ = "stores"

    # Ecwid's numeric store id, kept as a string
    store_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    store_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # OAuth credentials (encrypted)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    scopes: Mapped[str | None] = mapped_column(String(512), nullable=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Saved widget configuration, None until the merchant first saves
    recommendation_settings: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    # Sync tracking
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    products: Mapped[list["Product"]] = relationship(
        "Product",
        back_populates="store",
        cascade="all, delete-orphan",
    )
    categories: Mapped[list["Category"]] = relationship(
        "Category",
        back_populates="store",
        cascade="all, delete-orphan",
    )
    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="store",
        cascade="all, delete-orphan",
    )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def __repr__(self) -> str:
        return f"<Store {self.store_id} ({self.store_name})>"
