"""
Pydantic schemas for restaurants
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
import uuid


class RestaurantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    google_review_link: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    wifi_password: Optional[str] = Field(default=None, max_length=100)
    opening_time: Optional[str] = Field(default=None, max_length=20)
    closing_time: Optional[str] = Field(default=None, max_length=20)
    payment_qr_code: Optional[str] = Field(default=None, max_length=1000)
    upi_id: Optional[str] = Field(default=None, max_length=100)
    orders_enabled: bool = True


class RestaurantCreate(RestaurantBase):
    pass


class RestaurantUpdate(BaseModel):
    """Partial update; only fields sent are changed"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    google_review_link: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    wifi_password: Optional[str] = Field(default=None, max_length=100)
    opening_time: Optional[str] = Field(default=None, max_length=20)
    closing_time: Optional[str] = Field(default=None, max_length=20)
    payment_qr_code: Optional[str] = Field(default=None, max_length=1000)
    upi_id: Optional[str] = Field(default=None, max_length=100)
    orders_enabled: Optional[bool] = None


class RestaurantResponse(RestaurantBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    table_count: int
    menu_url: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class RestaurantPublic(BaseModel):
    """Display metadata shown to diners"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    google_review_link: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    wifi_password: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    payment_qr_code: Optional[str] = None
    upi_id: Optional[str] = None
