"""
Order model for diner orders
Created once at checkout; only the status changes afterwards
"""

from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime
from typing import Optional, TYPE_CHECKING, List
from decimal import Decimal
from enum import Enum
import uuid

if TYPE_CHECKING:
    from qrmenu.models.order_item import OrderItem


class OrderStatus(str, Enum):
    """Linear order progression driven by staff"""
    PLACED = "placed"          # Submitted by the diner
    PREPARING = "preparing"    # Kitchen is working on it
    READY = "ready"            # Ready to be served
    COMPLETED = "completed"    # Served, final


STATUS_FLOW = [
    OrderStatus.PLACED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
]


class Order(SQLModel, table=True):
    """Order placed by an anonymous device, optionally at a table"""

    __tablename__ = "orders"

    # Primary key
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    restaurant_id: uuid.UUID = Field(
        foreign_key="restaurants.id",
        index=True,
        ondelete="CASCADE",
        description="Restaurant the order was placed at"
    )

    # Table linkage (None for orders from the plain menu link)
    table_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="restaurant_tables.id",
        index=True,
        nullable=True,
        ondelete="SET NULL",
        description="Table the order was placed from"
    )
    table_number: Optional[int] = Field(
        default=None,
        index=True,
        nullable=True,
        description="Table number snapshot at order time"
    )

    # Anonymous diner
    device_id: str = Field(max_length=64, index=True, nullable=False, description="Placing device identifier")

    # Order status
    status: OrderStatus = Field(
        default=OrderStatus.PLACED,
        index=True,
        description="Current status of the order"
    )

    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Sum of line price x quantity"
    )
    notes: Optional[str] = Field(default=None, max_length=1000, nullable=True, description="Diner notes")

    # Status timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = Field(default=None, nullable=True)
    preparing_at: Optional[datetime] = Field(default=None, nullable=True)
    ready_at: Optional[datetime] = Field(default=None, nullable=True)
    completed_at: Optional[datetime] = Field(default=None, nullable=True)

    # Optimistic concurrency control
    version: int = Field(
        default=1,
        description="Version number for optimistic concurrency control"
    )

    # Relationships
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.position"}
    )

    def next_status(self) -> Optional[OrderStatus]:
        """Status that follows the current one, None once completed"""
        index = STATUS_FLOW.index(self.status)
        if index + 1 < len(STATUS_FLOW):
            return STATUS_FLOW[index + 1]
        return None

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        """Only the immediate successor is a valid transition"""
        return new_status == self.next_status()
