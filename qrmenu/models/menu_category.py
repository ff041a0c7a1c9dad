"""
Menu category model for organizing menu items
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
import uuid


class MenuCategory(SQLModel, table=True):
    """Menu category for organizing menu items"""

    __tablename__ = "menu_categories"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    restaurant_id: uuid.UUID = Field(
        foreign_key="restaurants.id",
        index=True,
        ondelete="CASCADE",
        description="Restaurant this category belongs to"
    )

    # Category details
    name: str = Field(max_length=255, nullable=False, description="Category name")
    category_type: str = Field(default="food", max_length=50, description="Menu tab: food, drinks, ...")

    # Display order, contiguous 0..n-1 per restaurant
    display_order: int = Field(default=0, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
