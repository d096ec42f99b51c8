"""Category model with precomputed category-page recommendations."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recs_api.models.base import Base, JSONType

if TYPE_CHECKING:
    from recs_api.models.store import Store

# Bucket for products that have no category assigned
DEFAULT_CATEGORY_ID = "default"


class Category(Base):
    """A category seen during sync, with its recommended product ids."""

    __tablename__ = "categories"

    store_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    recommended_products: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )

    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="categories",
    )

    __table_args__ = (
        Index(
            "ix_categories_store_category_id",
            "store_id",
            "category_id",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<Category {self.category_id}>"
