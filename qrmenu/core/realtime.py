"""
Event handlers pushing domain events to WebSocket clients
"""

import structlog

from qrmenu.core.events import (
    DeviceCheckedOut, EventBus, MenuPublished, OrderDeleted, OrderPlaced,
    OrderStatusChanged, TableOrdersCleared, TablesResized, event_bus
)
from qrmenu.core.websocket_manager import manager

logger = structlog.get_logger(__name__)


async def on_order_placed(event: OrderPlaced):
    await manager.send_order_placed(event.restaurant_id, event.order)


async def on_order_status_changed(event: OrderStatusChanged):
    await manager.send_order_updated(event.restaurant_id, event.order, event.previous_status)


async def on_order_deleted(event: OrderDeleted):
    await manager.send_order_deleted(event.restaurant_id, event.order_id, event.table_number)


async def on_table_orders_cleared(event: TableOrdersCleared):
    await manager.send_table_orders_cleared(event.restaurant_id, event.table_number, event.order_ids)


async def on_device_checked_out(event: DeviceCheckedOut):
    # One checkout can span several restaurants
    for removed in event.removed_orders:
        await manager.send_order_deleted(
            removed["restaurant_id"], removed["order_id"], removed.get("table_number")
        )


async def on_menu_published(event: MenuPublished):
    await manager.send_menu_updated(event.restaurant_id)


async def on_tables_resized(event: TablesResized):
    await manager.send_tables_updated(event.restaurant_id, event.table_count)


HANDLERS = {
    OrderPlaced: on_order_placed,
    OrderStatusChanged: on_order_status_changed,
    OrderDeleted: on_order_deleted,
    TableOrdersCleared: on_table_orders_cleared,
    DeviceCheckedOut: on_device_checked_out,
    MenuPublished: on_menu_published,
    TablesResized: on_tables_resized,
}


def register_realtime_handlers(bus: EventBus = event_bus):
    """Subscribe the broadcast handlers (subscribing twice is a no-op)"""
    for event_class, handler in HANDLERS.items():
        bus.subscribe(event_class.__name__, handler)

    logger.info("Realtime handlers registered", events=len(HANDLERS))
