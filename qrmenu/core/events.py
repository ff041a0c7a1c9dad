"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system. Order events carry the
serialized order so subscribers can push it without reading it back.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.occurred_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__
        }


class OrderPlaced(DomainEvent):
    """Event fired when a diner places an order"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        order: Dict[str, Any],
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.order = order

    @property
    def table_number(self) -> Optional[int]:
        return self.order.get("table_number")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "order": self.order
        })
        return data


class OrderStatusChanged(DomainEvent):
    """Event fired when staff move an order to its next status"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        order: Dict[str, Any],
        previous_status: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.order = order
        self.previous_status = previous_status

    @property
    def table_number(self) -> Optional[int]:
        return self.order.get("table_number")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "order": self.order,
            "previous_status": self.previous_status
        })
        return data


class OrderDeleted(DomainEvent):
    """Event fired when a single order is deleted"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        order_id: uuid.UUID,
        table_number: Optional[int],
        deleted_by: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.order_id = order_id
        self.table_number = table_number
        self.deleted_by = deleted_by

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "order_id": str(self.order_id),
            "table_number": self.table_number,
            "deleted_by": self.deleted_by
        })
        return data


class TableOrdersCleared(DomainEvent):
    """Event fired when staff delete every order of a table"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        table_number: int,
        order_ids: List[uuid.UUID],
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.table_number = table_number
        self.order_ids = order_ids

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "table_number": self.table_number,
            "order_ids": [str(order_id) for order_id in self.order_ids]
        })
        return data


class DeviceCheckedOut(DomainEvent):
    """Event fired when a device finishes and its orders are removed"""

    def __init__(
        self,
        device_id: str,
        removed_orders: List[Dict[str, Any]],
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.device_id = device_id
        # [{"order_id", "restaurant_id", "table_number"}]
        self.removed_orders = removed_orders

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "device_id": self.device_id,
            "removed_orders": [
                {
                    "order_id": str(removed["order_id"]),
                    "restaurant_id": str(removed["restaurant_id"]),
                    "table_number": removed.get("table_number"),
                }
                for removed in self.removed_orders
            ]
        })
        return data


class MenuPublished(DomainEvent):
    """Event fired when the editor saves a full menu document"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        changes: Dict[str, Dict[str, int]],
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.changes = changes

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "changes": self.changes
        })
        return data


class TablesResized(DomainEvent):
    """Event fired when the table count of a restaurant changes"""

    def __init__(
        self,
        restaurant_id: uuid.UUID,
        table_count: int,
        added: List[int],
        removed: List[int],
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.restaurant_id = restaurant_id
        self.table_count = table_count
        self.added = added
        self.removed = removed

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "restaurant_id": str(self.restaurant_id),
            "table_count": self.table_count,
            "added": self.added,
            "removed": self.removed
        })
        return data


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
        logger.debug("Subscribed event handler", event_type=event_type)

    def unsubscribe(self, event_type: str, handler: Callable):
        """Unsubscribe from an event type"""
        if handler in self._subscribers.get(event_type, []):
            self._subscribers[event_type].remove(handler)
            logger.debug("Unsubscribed event handler", event_type=event_type)

    async def publish(self, event: DomainEvent):
        """Publish an event to all subscribers; handler failures are logged"""
        event_type = event.__class__.__name__
        handlers = self._subscribers.get(event_type, [])

        if not handlers:
            logger.debug("No subscribers for event", event_type=event_type)
            return

        logger.info("Publishing event", event_type=event_type, event_id=str(event.event_id))

        for handler in list(handlers):
            try:
                await handler(event)
            except Exception as e:
                logger.error("Error in event handler", event_type=event_type, error=str(e), exc_info=True)

    def clear_subscribers(self):
        """Clear all subscribers (useful for testing)"""
        self._subscribers.clear()
        logger.debug("Cleared all event subscribers")


# Global event bus instance
event_bus = EventBus()
