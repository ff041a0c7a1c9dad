"""
Add-on models: modifier groups, their options and the item mapping
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from decimal import Decimal
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class AddonType(str, Enum):
    """How many options of an add-on a diner may pick"""
    SINGLE = "single"
    MULTIPLE = "multiple"


class MenuItemAddon(SQLModel, table=True):
    """Separately priced modifier group, shared between items of a restaurant"""

    __tablename__ = "menu_item_addons"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    restaurant_id: uuid.UUID = Field(foreign_key="restaurants.id", index=True, ondelete="CASCADE")

    title: str = Field(max_length=255, nullable=False, description="Group title, e.g. 'Extra toppings'")
    addon_type: AddonType = Field(default=AddonType.MULTIPLE, description="Single or multiple choice")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class AddonOption(SQLModel, table=True):
    """Single choice within an add-on group"""

    __tablename__ = "menu_addon_options"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    addon_id: uuid.UUID = Field(foreign_key="menu_item_addons.id", index=True, ondelete="CASCADE")

    name: str = Field(max_length=255, nullable=False)
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    display_order: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class MenuItemAddonMapping(SQLModel, table=True):
    """Attaches an add-on group to a menu item"""

    __tablename__ = "menu_item_addon_mappings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    menu_item_id: uuid.UUID = Field(foreign_key="menu_items.id", index=True, ondelete="CASCADE")
    addon_id: uuid.UUID = Field(foreign_key="menu_item_addons.id", index=True, ondelete="CASCADE")
    display_order: int = Field(default=0)

    __table_args__ = (
        UniqueConstraint("menu_item_id", "addon_id", name="uq_addon_mapping_item_addon"),
    )
