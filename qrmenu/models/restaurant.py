"""
Restaurant model - owner of a menu, its tables and its orders
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
import uuid


class Restaurant(SQLModel, table=True):
    """Restaurant with display metadata shown on the diner menu"""

    __tablename__ = "restaurants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: uuid.UUID = Field(foreign_key="users.id", index=True, description="Owning user")

    # Display metadata
    name: str = Field(max_length=255, nullable=False)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    google_review_link: Optional[str] = Field(default=None, max_length=1000)

    # Contact and hours
    location: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    wifi_password: Optional[str] = Field(default=None, max_length=100)
    opening_time: Optional[str] = Field(default=None, max_length=20)
    closing_time: Optional[str] = Field(default=None, max_length=20)

    # Payment details printed on the bill
    payment_qr_code: Optional[str] = Field(default=None, max_length=1000)
    upi_id: Optional[str] = Field(default=None, max_length=100)

    # Ordering
    orders_enabled: bool = Field(default=True, description="Whether diners can place orders")
    table_count: int = Field(default=0, description="Number of configured tables")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
