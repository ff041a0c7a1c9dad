"""
Restaurant table model - a seating location with its own QR ordering link
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import Optional
import uuid


class RestaurantTable(SQLModel, table=True):
    """Numbered table of a restaurant"""

    __tablename__ = "restaurant_tables"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    restaurant_id: uuid.UUID = Field(
        foreign_key="restaurants.id",
        index=True,
        ondelete="CASCADE",
        description="Restaurant this table belongs to"
    )
    table_number: int = Field(nullable=False, description="Table number printed next to the QR code")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_restaurant_table_number"),
    )
