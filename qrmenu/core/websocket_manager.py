"""
WebSocket connection manager for real-time updates

Staff dashboards listen on a restaurant channel, diners on a
(restaurant, table number) channel. Messages carry the changed order
itself so clients apply it without re-fetching.
"""

from typing import Any, Dict, List, Optional, Set, Tuple
from fastapi import WebSocket
from datetime import datetime
from json import dumps
import structlog
import uuid

from qrmenu.schemas.order import table_order_payload

logger = structlog.get_logger(__name__)

TableKey = Tuple[uuid.UUID, int]


class ConnectionManager:
    """Manages WebSocket connections"""

    def __init__(self):
        # Active connections by restaurant ID (staff dashboards)
        self.restaurant_connections: Dict[uuid.UUID, Set[WebSocket]] = {}

        # Active connections by (restaurant ID, table number) (diners)
        self.table_connections: Dict[TableKey, Set[WebSocket]] = {}

        # WebSocket to identifier mappings (for cleanup)
        self.connection_to_restaurant: Dict[WebSocket, uuid.UUID] = {}
        self.connection_to_table: Dict[WebSocket, TableKey] = {}

    async def connect_restaurant(self, websocket: WebSocket, restaurant_id: uuid.UUID):
        """Connect a staff WebSocket for a restaurant dashboard"""
        await websocket.accept()

        self.restaurant_connections.setdefault(restaurant_id, set()).add(websocket)
        self.connection_to_restaurant[websocket] = restaurant_id

        logger.info("Connected restaurant WebSocket", restaurant_id=str(restaurant_id))

    async def connect_table(self, websocket: WebSocket, restaurant_id: uuid.UUID, table_number: int):
        """Connect a diner WebSocket for a table"""
        await websocket.accept()

        key = (restaurant_id, table_number)
        self.table_connections.setdefault(key, set()).add(websocket)
        self.connection_to_table[websocket] = key

        logger.info("Connected table WebSocket", restaurant_id=str(restaurant_id), table_number=table_number)

    def disconnect(self, websocket: WebSocket):
        """Disconnect a WebSocket connection"""
        if websocket in self.connection_to_restaurant:
            restaurant_id = self.connection_to_restaurant.pop(websocket)
            connections = self.restaurant_connections.get(restaurant_id)
            if connections is not None:
                connections.discard(websocket)
                if not connections:
                    del self.restaurant_connections[restaurant_id]
            logger.info("Disconnected restaurant WebSocket", restaurant_id=str(restaurant_id))

        elif websocket in self.connection_to_table:
            key = self.connection_to_table.pop(websocket)
            connections = self.table_connections.get(key)
            if connections is not None:
                connections.discard(websocket)
                if not connections:
                    del self.table_connections[key]
            logger.info("Disconnected table WebSocket", restaurant_id=str(key[0]), table_number=key[1])
        else:
            logger.warning("Attempted to disconnect unknown WebSocket")

    async def _send_all(self, connections: Set[WebSocket], message: dict) -> int:
        message_json = dumps(message, default=str)

        sent = 0
        disconnected = []
        for connection in list(connections):
            try:
                await connection.send_text(message_json)
                sent += 1
            except Exception as e:
                logger.error("Error sending to connection", error=str(e))
                disconnected.append(connection)

        # Clean up dead connections
        for connection in disconnected:
            self.disconnect(connection)

        return sent

    async def broadcast_to_restaurant(self, restaurant_id: uuid.UUID, message: dict) -> int:
        """Broadcast message to all dashboards of a restaurant"""
        connections = self.restaurant_connections.get(restaurant_id)
        if not connections:
            logger.debug("No connections for restaurant", restaurant_id=str(restaurant_id))
            return 0

        sent = await self._send_all(connections, message)
        logger.debug("Broadcasted to restaurant", restaurant_id=str(restaurant_id), sent=sent)
        return sent

    async def broadcast_to_table(self, restaurant_id: uuid.UUID, table_number: int, message: dict) -> int:
        """Broadcast message to all diners at a table"""
        connections = self.table_connections.get((restaurant_id, table_number))
        if not connections:
            logger.debug("No connections for table", restaurant_id=str(restaurant_id), table_number=table_number)
            return 0

        sent = await self._send_all(connections, message)
        logger.debug("Broadcasted to table", restaurant_id=str(restaurant_id), table_number=table_number, sent=sent)
        return sent

    async def _broadcast_order_message(
        self,
        restaurant_id: uuid.UUID,
        table_number: Optional[int],
        message: dict,
        table_message: Optional[dict] = None
    ):
        await self.broadcast_to_restaurant(restaurant_id, message)
        if table_number is not None:
            await self.broadcast_to_table(restaurant_id, table_number, table_message or message)

    def _with_table_order(self, message: dict) -> dict:
        # Diners at a table never receive each other's device identifiers
        return dict(message, order=table_order_payload(message["order"]))

    # Order event methods
    async def send_order_placed(self, restaurant_id: uuid.UUID, order: Dict[str, Any]):
        """Send a newly placed order to the dashboard and its table"""
        message = {
            "type": "order_placed",
            "order": order,
            "timestamp": datetime.utcnow().isoformat()
        }
        await self._broadcast_order_message(
            restaurant_id, order.get("table_number"), message, self._with_table_order(message)
        )

    async def send_order_updated(
        self,
        restaurant_id: uuid.UUID,
        order: Dict[str, Any],
        previous_status: Optional[str] = None
    ):
        """Send an order whose status changed"""
        message = {
            "type": "order_updated",
            "order": order,
            "previous_status": previous_status,
            "timestamp": datetime.utcnow().isoformat()
        }
        await self._broadcast_order_message(
            restaurant_id, order.get("table_number"), message, self._with_table_order(message)
        )

    async def send_order_deleted(
        self,
        restaurant_id: uuid.UUID,
        order_id: uuid.UUID,
        table_number: Optional[int]
    ):
        """Send order deleted event"""
        await self._broadcast_order_message(restaurant_id, table_number, {
            "type": "order_deleted",
            "order_id": str(order_id),
            "table_number": table_number,
            "timestamp": datetime.utcnow().isoformat()
        })

    async def send_table_orders_cleared(
        self,
        restaurant_id: uuid.UUID,
        table_number: int,
        order_ids: List[uuid.UUID]
    ):
        """Send table cleared event"""
        await self._broadcast_order_message(restaurant_id, table_number, {
            "type": "table_orders_cleared",
            "table_number": table_number,
            "order_ids": [str(order_id) for order_id in order_ids],
            "timestamp": datetime.utcnow().isoformat()
        })

    async def send_menu_updated(self, restaurant_id: uuid.UUID):
        """Tell every diner at the restaurant that the menu changed"""
        message = {
            "type": "menu_updated",
            "restaurant_id": str(restaurant_id),
            "timestamp": datetime.utcnow().isoformat()
        }
        await self.broadcast_to_restaurant(restaurant_id, message)
        for key in [key for key in self.table_connections if key[0] == restaurant_id]:
            await self.broadcast_to_table(key[0], key[1], message)

    async def send_tables_updated(self, restaurant_id: uuid.UUID, table_count: int):
        """Send new table count to the dashboard"""
        await self.broadcast_to_restaurant(restaurant_id, {
            "type": "tables_updated",
            "table_count": table_count,
            "timestamp": datetime.utcnow().isoformat()
        })

    def get_connection_count(self) -> dict:
        """Get count of active connections"""
        return {
            "restaurant_connections": sum(len(conns) for conns in self.restaurant_connections.values()),
            "table_connections": sum(len(conns) for conns in self.table_connections.values()),
        }


# Global connection manager instance
manager = ConnectionManager()
