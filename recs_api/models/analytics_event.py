"""Analytics event model for storefront widget usage."""

from typing import Any

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recs_api.models.base import Base, JSONType


class AnalyticsEvent(Base):
    """A single usage event (widget view, click, add-to-cart...).

    Keyed by the Ecwid store id string rather than a foreign key so events
    from not-yet-registered storefronts are still recorded.
    """

    __tablename__ = "analytics_events"

    store_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    event_data: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        default=dict,
        nullable=False,
    )
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("ix_analytics_events_store_created", "store_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<AnalyticsEvent {self.event_type} store={self.store_id}>"
