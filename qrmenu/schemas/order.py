"""
Pydantic schemas for orders, bills and the dashboard
"""

from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime
import hashlib
import hmac
import uuid

from qrmenu.core.config import get_settings
from qrmenu.models.order import OrderStatus
from qrmenu.schemas.cart import Cart
from qrmenu.schemas.restaurant import RestaurantPublic


class OrderCreate(BaseModel):
    cart: Cart
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    version: Optional[int] = Field(default=None, description="Expected version; 409 when stale")


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    menu_item_id: Optional[uuid.UUID] = None
    variant_id: Optional[uuid.UUID] = None
    item_name: str
    variant_name: Optional[str] = None
    addons: List[Dict[str, Any]] = Field(default_factory=list)
    quantity: int
    price: Decimal


GUEST_LABEL_LENGTH = 8


def guest_label(device_id: str) -> str:
    """Short tag telling diners at a table apart; the device id cannot be recovered from it"""
    digest = hmac.new(get_settings().JWT_SECRET_KEY.encode(), device_id.encode(), hashlib.sha256)
    return digest.hexdigest()[:GUEST_LABEL_LENGTH]


class OrderFields(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    restaurant_id: uuid.UUID
    table_number: Optional[int] = None
    status: OrderStatus
    total_amount: Decimal
    notes: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    preparing_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)


class OrderResponse(OrderFields):
    """Order as its device and the restaurant's staff see it"""
    table_id: Optional[uuid.UUID] = None
    device_id: str

    @computed_field
    @property
    def guest_label(self) -> str:
        return guest_label(self.device_id)


class TableOrderResponse(OrderFields):
    """Order as everyone at the table sees it; carries no device identifier"""
    guest_label: str
    is_mine: bool = False

    @classmethod
    def from_order(cls, order: Any, viewer_device_id: Optional[str] = None) -> "TableOrderResponse":
        full = OrderResponse.model_validate(order)
        return cls(
            **full.model_dump(include=set(OrderFields.model_fields)),
            guest_label=full.guest_label,
            is_mine=viewer_device_id is not None and viewer_device_id == full.device_id,
        )


def table_order_payload(order: Dict[str, Any]) -> Dict[str, Any]:
    """Strip a serialized order down to what the table channel may show"""
    return TableOrderResponse.from_order(order).model_dump(mode="json")


class TableSummary(BaseModel):
    order_count: int
    device_count: int
    item_count: int
    total_amount: Decimal


class TableOrdersResponse(BaseModel):
    table_number: int
    orders: List[TableOrderResponse]
    summary: TableSummary


class DashboardResponse(BaseModel):
    orders: List[OrderResponse]
    order_count: int
    revenue_total: Decimal


class GroupedOrdersResponse(BaseModel):
    """Orders keyed by table number, "no-table" for menu-link orders"""
    groups: Dict[str, List[OrderResponse]]
    order_count: int
    revenue_total: Decimal


class BillResponse(BaseModel):
    restaurant: RestaurantPublic
    orders: List[OrderResponse]
    total_amount: Decimal


class ClearTableResponse(BaseModel):
    table_number: int
    deleted_count: int
