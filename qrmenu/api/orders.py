"""
Order management API endpoints
Placement by diners, the table view, the staff dashboard and status changes
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session
from typing import Optional
import structlog
import uuid

from qrmenu.core.database import get_session
from qrmenu.core.dependencies import (
    get_current_user, get_device_id, get_optional_device_id, load_restaurant_for_user, require_restaurant,
)
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.events import OrderDeleted, OrderPlaced, OrderStatusChanged, TableOrdersCleared, event_bus
from qrmenu.core.permissions import Permission
from qrmenu.models import Order, OrderStatus, Restaurant, User
from qrmenu.schemas.order import (
    ClearTableResponse, DashboardResponse, GroupedOrdersResponse, OrderCreate, OrderResponse,
    OrderStatusUpdate, TableOrderResponse, TableOrdersResponse,
)
from qrmenu.services import orders as order_service
from qrmenu.services.menu import get_restaurant_or_404, get_table_or_404

logger = structlog.get_logger(__name__)
router = APIRouter()


def get_order_or_404(session: Session, order_id: uuid.UUID) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    return order


def order_response(order: Order) -> OrderResponse:
    return OrderResponse.model_validate(order)


# ============================================================================
# Diner endpoints
# ============================================================================

@router.post("/restaurants/{restaurant_id}/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    restaurant_id: uuid.UUID,
    order_data: OrderCreate,
    table: Optional[int] = Query(default=None, ge=1, description="Table number from the QR link"),
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """Place an order from the diner's cart"""
    restaurant = get_restaurant_or_404(session, restaurant_id)

    try:
        order = order_service.place_order(
            session,
            restaurant,
            order_data.cart,
            device_id=device_id,
            table_number=table,
            notes=order_data.notes,
        )
        session.commit()
        session.refresh(order)
        payload = order_service.order_to_dict(order)

    except (HTTPException, QRMenuError) as e:
        session.rollback()
        logger.warning("Order rejected", restaurant_id=str(restaurant_id), table_number=table, reason=str(e))
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error placing order", restaurant_id=str(restaurant_id), error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to place order"
        )

    await event_bus.publish(OrderPlaced(restaurant_id=restaurant.id, order=payload))
    return OrderResponse.model_validate(payload)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: uuid.UUID,
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """Order placed by this device"""
    order = get_order_or_404(session, order_id)
    if order.device_id != device_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order_response(order)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_order(
    order_id: uuid.UUID,
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """A diner may withdraw their own order until the kitchen picks it up"""
    order = get_order_or_404(session, order_id)
    if order.device_id != device_id:
        logger.warning("Device tried to delete another device's order", order_id=str(order_id))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your order")
    if order.status != OrderStatus.PLACED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order is already {order.status.value} and can no longer be deleted"
        )

    event = OrderDeleted(
        restaurant_id=order.restaurant_id,
        order_id=order.id,
        table_number=order.table_number,
        deleted_by="device",
    )
    order_service.delete_order(session, order, deleted_by="device")
    session.commit()

    await event_bus.publish(event)


@router.get("/restaurants/{restaurant_id}/tables/{table_number}/orders", response_model=TableOrdersResponse)
async def get_table_orders(
    restaurant_id: uuid.UUID,
    table_number: int,
    device_id: Optional[str] = Depends(get_optional_device_id),
    session: Session = Depends(get_session)
):
    """
    All orders of one table across devices, newest first, with a summary.

    Diners are told apart by guest label only; a known device sees its own
    orders flagged with is_mine.
    """
    get_restaurant_or_404(session, restaurant_id)
    get_table_or_404(session, restaurant_id, table_number)

    orders = order_service.list_table_orders(session, restaurant_id, table_number)
    return TableOrdersResponse(
        table_number=table_number,
        orders=[TableOrderResponse.from_order(order, device_id) for order in orders],
        summary=order_service.summarize_table(orders),
    )


# ============================================================================
# Staff endpoints
# ============================================================================

@router.get("/restaurants/{restaurant_id}/orders", response_model=DashboardResponse)
async def list_orders(
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    table_only: bool = False,
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_VIEW)),
    session: Session = Depends(get_session)
):
    """Order dashboard, newest first"""
    orders = order_service.list_restaurant_orders(session, restaurant.id, order_status, table_only)
    return DashboardResponse(
        orders=[order_response(order) for order in orders],
        order_count=len(orders),
        revenue_total=order_service.orders_total(orders),
    )


@router.get("/restaurants/{restaurant_id}/orders/grouped", response_model=GroupedOrdersResponse)
async def list_orders_by_table(
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_VIEW)),
    session: Session = Depends(get_session)
):
    """Dashboard grouped by table number"""
    orders = order_service.list_restaurant_orders(session, restaurant.id, order_status)
    groups = order_service.group_by_table(orders)
    return GroupedOrdersResponse(
        groups={key: [order_response(order) for order in group] for key, group in groups.items()},
        order_count=len(orders),
        revenue_total=order_service.orders_total(orders),
    )


async def _change_status(
    session: Session,
    order: Order,
    new_status: Optional[OrderStatus],
    expected_version: Optional[int],
) -> OrderResponse:
    try:
        if new_status is None:
            previous = order_service.advance_order(session, order, expected_version)
        else:
            previous = order_service.change_status(session, order, new_status, expected_version)
        session.commit()
        session.refresh(order)
        payload = order_service.order_to_dict(order)

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error updating order status", order_id=str(order.id), error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status"
        )

    await event_bus.publish(OrderStatusChanged(
        restaurant_id=order.restaurant_id,
        order=payload,
        previous_status=previous.value,
    ))
    return OrderResponse.model_validate(payload)


@router.post("/orders/{order_id}/advance", response_model=OrderResponse)
async def advance_order(
    order_id: uuid.UUID,
    version: Optional[int] = Query(default=None, description="Expected version; 409 when stale"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Move an order one step forward"""
    order = get_order_or_404(session, order_id)
    load_restaurant_for_user(session, order.restaurant_id, user, Permission.ORDERS_UPDATE)
    return await _change_status(session, order, None, version)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_data: OrderStatusUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Set the status; only the immediate successor is accepted"""
    order = get_order_or_404(session, order_id)
    load_restaurant_for_user(session, order.restaurant_id, user, Permission.ORDERS_UPDATE)
    return await _change_status(session, order, status_data.status, status_data.version)


@router.delete("/restaurants/{restaurant_id}/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: uuid.UUID,
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_DELETE)),
    session: Session = Depends(get_session)
):
    """Staff delete of a single order"""
    order = get_order_or_404(session, order_id)
    if order.restaurant_id != restaurant.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    event = OrderDeleted(
        restaurant_id=restaurant.id,
        order_id=order.id,
        table_number=order.table_number,
        deleted_by="staff",
    )
    order_service.delete_order(session, order, deleted_by="staff")
    session.commit()

    await event_bus.publish(event)


@router.delete("/restaurants/{restaurant_id}/tables/{table_number}/orders", response_model=ClearTableResponse)
async def clear_table_orders(
    table_number: int,
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_DELETE)),
    session: Session = Depends(get_session)
):
    """Delete every order of one table; there is no undo"""
    try:
        order_ids = order_service.clear_table_orders(session, restaurant.id, table_number)
        session.commit()

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error clearing table orders", table_number=table_number, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear table orders"
        )

    await event_bus.publish(TableOrdersCleared(
        restaurant_id=restaurant.id,
        table_number=table_number,
        order_ids=order_ids,
    ))
    return ClearTableResponse(table_number=table_number, deleted_count=len(order_ids))
