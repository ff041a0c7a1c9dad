"""
Order placement, status progression and table aggregation
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import uuid

from sqlmodel import Session, select
import structlog

from qrmenu.core.errors import (
    InvalidCartError, InvalidStatusTransitionError, OrderingDisabledError, OrderVersionConflictError,
)
from qrmenu.models import Order, OrderItem, OrderStatus, Restaurant
from qrmenu.schemas.cart import Cart
from qrmenu.schemas.order import OrderResponse, TableSummary
from qrmenu.services.cart import price_cart
from qrmenu.services.menu import get_table_or_404

logger = structlog.get_logger(__name__)

NO_TABLE = "no-table"

# Timestamp column stamped when an order enters a status
_STATUS_TIMESTAMPS = {
    OrderStatus.PREPARING: "preparing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.COMPLETED: "completed_at",
}


def order_to_dict(order: Order) -> Dict[str, Any]:
    """JSON-ready order payload used for responses and push messages"""
    return OrderResponse.model_validate(order).model_dump(mode="json")


def place_order(
    session: Session,
    restaurant: Restaurant,
    cart: Cart,
    device_id: str,
    table_number: Optional[int] = None,
    notes: Optional[str] = None,
) -> Order:
    """
    Create one order and one line per distinct cart line (no commit).

    A table-scoped order carries both the table and the device.
    """
    if cart.is_empty:
        raise InvalidCartError("Your cart is empty")
    if not restaurant.orders_enabled:
        raise OrderingDisabledError("This restaurant is not taking orders right now")

    table = get_table_or_404(session, restaurant.id, table_number) if table_number is not None else None
    quote = price_cart(session, restaurant, cart)

    order = Order(
        restaurant_id=restaurant.id,
        table_id=table.id if table else None,
        table_number=table.table_number if table else None,
        device_id=device_id,
        status=OrderStatus.PLACED,
        total_amount=quote.total,
        notes=notes,
    )
    order.items = [
        OrderItem(
            menu_item_id=line.menu_item_id,
            variant_id=line.variant_id,
            item_name=line.item_name,
            variant_name=line.variant_name,
            addons=[addon.model_dump(mode="json") for addon in line.addons],
            quantity=line.quantity,
            price=line.unit_price,
            position=position,
        )
        for position, line in enumerate(quote.lines)
    ]
    session.add(order)
    session.flush()

    logger.info(
        "Order placed",
        order_id=str(order.id),
        restaurant_id=str(restaurant.id),
        table_number=order.table_number,
        lines=len(order.items),
        total=str(order.total_amount),
    )
    return order


def change_status(
    session: Session,
    order: Order,
    new_status: OrderStatus,
    expected_version: Optional[int] = None,
) -> OrderStatus:
    """Move an order to its immediate successor; returns the previous status"""
    if expected_version is not None and expected_version != order.version:
        raise OrderVersionConflictError(
            f"Order was modified (version {order.version}, expected {expected_version})"
        )

    if not order.can_transition_to(new_status):
        if order.status == OrderStatus.COMPLETED:
            raise InvalidStatusTransitionError("Order is already completed")
        raise InvalidStatusTransitionError(
            f"Cannot move order from {order.status.value} to {new_status.value}; next is {order.next_status().value}"
        )

    previous = order.status
    now = datetime.utcnow()
    order.status = new_status
    setattr(order, _STATUS_TIMESTAMPS[new_status], now)
    order.updated_at = now
    order.version += 1
    session.add(order)

    logger.info(
        "Order status changed",
        order_id=str(order.id),
        previous_status=previous.value,
        status=new_status.value,
    )
    return previous


def advance_order(session: Session, order: Order, expected_version: Optional[int] = None) -> OrderStatus:
    """One step forward through placed, preparing, ready, completed"""
    next_status = order.next_status()
    if next_status is None:
        raise InvalidStatusTransitionError("Order is already completed")
    return change_status(session, order, next_status, expected_version)


def list_restaurant_orders(
    session: Session,
    restaurant_id: uuid.UUID,
    status: Optional[OrderStatus] = None,
    table_only: bool = False,
) -> List[Order]:
    """Newest first"""
    query = select(Order).where(Order.restaurant_id == restaurant_id)
    if status is not None:
        query = query.where(Order.status == status)
    if table_only:
        query = query.where(Order.table_number.is_not(None))
    return list(session.exec(query.order_by(Order.created_at.desc())).all())


def list_table_orders(session: Session, restaurant_id: uuid.UUID, table_number: int) -> List[Order]:
    return list(session.exec(
        select(Order)
        .where(Order.restaurant_id == restaurant_id, Order.table_number == table_number)
        .order_by(Order.created_at.desc())
    ).all())


def list_device_orders(session: Session, device_id: str, restaurant_id: Optional[uuid.UUID] = None) -> List[Order]:
    query = select(Order).where(Order.device_id == device_id)
    if restaurant_id is not None:
        query = query.where(Order.restaurant_id == restaurant_id)
    return list(session.exec(query.order_by(Order.created_at.desc())).all())


def orders_total(orders: List[Order]) -> Decimal:
    return sum((order.total_amount for order in orders), Decimal("0.00"))


def summarize_table(orders: List[Order]) -> TableSummary:
    return TableSummary(
        order_count=len(orders),
        device_count=len({order.device_id for order in orders}),
        item_count=sum(item.quantity for order in orders for item in order.items),
        total_amount=orders_total(orders),
    )


def group_by_table(orders: List[Order]) -> Dict[str, List[Order]]:
    """Orders keyed by table number, ascending, with menu-link orders last"""
    groups: Dict[Any, List[Order]] = {}
    for order in orders:
        groups.setdefault(order.table_number, []).append(order)

    numbered = sorted(key for key in groups if key is not None)
    result = {str(number): groups[number] for number in numbered}
    if None in groups:
        result[NO_TABLE] = groups[None]
    return result


def delete_order(session: Session, order: Order, deleted_by: str) -> None:
    session.delete(order)
    logger.info("Order deleted", order_id=str(order.id), deleted_by=deleted_by)


def clear_table_orders(session: Session, restaurant_id: uuid.UUID, table_number: int) -> List[uuid.UUID]:
    """Delete every order of one table; other tables are untouched"""
    orders = list_table_orders(session, restaurant_id, table_number)
    for order in orders:
        session.delete(order)

    logger.info(
        "Table orders cleared",
        restaurant_id=str(restaurant_id),
        table_number=table_number,
        deleted=len(orders),
    )
    return [order.id for order in orders]


def checkout_device(session: Session, device_id: str) -> List[Dict[str, Any]]:
    """Remove all orders a device placed, in every restaurant"""
    orders = list_device_orders(session, device_id)
    removed = [
        {"order_id": order.id, "restaurant_id": order.restaurant_id, "table_number": order.table_number}
        for order in orders
    ]
    for order in orders:
        session.delete(order)

    logger.info("Device checked out", deleted=len(removed))
    return removed
