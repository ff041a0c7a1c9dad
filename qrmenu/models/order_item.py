"""
Order item model - denormalized copy of menu data at order time
"""

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, JSON
from typing import Optional, TYPE_CHECKING, List
from decimal import Decimal
import uuid

if TYPE_CHECKING:
    from qrmenu.models.order import Order


class OrderItem(SQLModel, table=True):
    """Line of an order; later menu edits never alter it"""

    __tablename__ = "order_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_id: uuid.UUID = Field(foreign_key="orders.id", index=True, ondelete="CASCADE")

    # Source references, kept as plain ids so menu deletes don't touch history
    menu_item_id: Optional[uuid.UUID] = Field(default=None, nullable=True)
    variant_id: Optional[uuid.UUID] = Field(default=None, nullable=True)

    # Snapshot
    item_name: str = Field(max_length=255, nullable=False)
    variant_name: Optional[str] = Field(default=None, max_length=255, nullable=True)
    addons: List[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Chosen add-on options: [{addon, option, price}]"
    )

    quantity: int = Field(default=1, ge=1)
    price: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=10,
        decimal_places=2,
        description="Unit price including variant and add-ons"
    )
    position: int = Field(default=0, description="Line position within the order")

    # Relationships
    order: Optional["Order"] = Relationship(back_populates="items")
