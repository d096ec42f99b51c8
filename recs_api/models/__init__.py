"""SQLAlchemy models."""

from recs_api.models.analytics_event import AnalyticsEvent
from recs_api.models.base import Base
from recs_api.models.category import DEFAULT_CATEGORY_ID, Category
from recs_api.models.order import Order
from recs_api.models.product import Product
from recs_api.models.store import Store

__all__ = [
    # Base
    "Base",
    # Store
    "Store",
    # Catalog mirror
    "Product",
    "Category",
    "DEFAULT_CATEGORY_ID",
    "Order",
    # Analytics
    "AnalyticsEvent",
]
