"""
Menu item and variant models
"""

from sqlmodel import Field, SQLModel
from decimal import Decimal
from datetime import datetime
from typing import Optional
import uuid


class MenuItem(SQLModel, table=True):
    """Menu item for ordering"""

    __tablename__ = "menu_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    category_id: uuid.UUID = Field(
        foreign_key="menu_categories.id",
        index=True,
        ondelete="CASCADE",
        description="Category this item belongs to"
    )

    # Item details
    name: str = Field(max_length=255, nullable=False, description="Item name")
    description: Optional[str] = Field(default=None, max_length=2000, description="Item description")
    weight: Optional[str] = Field(default=None, max_length=50, description="Portion size, e.g. '250 g'")
    dietary_type: Optional[str] = Field(default=None, max_length=50, description="veg, non-veg, vegan, ...")

    # Pricing
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2, description="Base price")
    old_price: Optional[Decimal] = Field(
        default=None,
        max_digits=10,
        decimal_places=2,
        description="Crossed-out price shown next to the current one"
    )

    # Images
    image_url: Optional[str] = Field(default=None, max_length=1000)

    # Availability
    is_visible: bool = Field(default=True, description="Hidden items are left out of the diner menu")
    is_available: bool = Field(default=True, description="Unavailable items are shown but cannot be ordered")

    # Display order, contiguous 0..n-1 per category
    display_order: int = Field(default=0, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class MenuItemVariant(SQLModel, table=True):
    """Priced alternative form of an item (size, portion)"""

    __tablename__ = "menu_item_variants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    menu_item_id: uuid.UUID = Field(foreign_key="menu_items.id", index=True, ondelete="CASCADE")

    name: str = Field(max_length=255, nullable=False)
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    display_order: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
