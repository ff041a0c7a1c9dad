"""
WebSocket tests for real-time order updates
Tests channel bookkeeping, broadcasts and the socket endpoints
"""

import json
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from sqlmodel import Session
from starlette.websockets import WebSocketDisconnect
import uuid

from qrmenu.core.auth import create_access_token
from qrmenu.core.database import get_session
from qrmenu.core.events import EventBus, OrderPlaced, TablesResized
from qrmenu.core.realtime import HANDLERS, register_realtime_handlers
from qrmenu.core.websocket_manager import ConnectionManager
from qrmenu.main import app
from qrmenu.schemas.order import OrderResponse
from qrmenu.services.tables import resize_tables
from conftest import API, DEVICE_A
from test_menu_sync import make_restaurant

RESTAURANT = uuid.uuid4()


def order_payload(table_number=None, device_id=DEVICE_A):
    return OrderResponse(
        id=uuid.uuid4(),
        restaurant_id=RESTAURANT,
        table_number=table_number,
        device_id=device_id,
        status="placed",
        total_amount=Decimal("7.00"),
        version=1,
        created_at=datetime.utcnow(),
    ).model_dump(mode="json")


def sent_messages(websocket):
    return [json.loads(call.args[0]) for call in websocket.send_text.await_args_list]


@pytest.fixture
def ws_manager():
    return ConnectionManager()


async def test_connect_registers_channels(ws_manager):
    dashboard = AsyncMock()
    diner = AsyncMock()

    await ws_manager.connect_restaurant(dashboard, RESTAURANT)
    await ws_manager.connect_table(diner, RESTAURANT, 4)

    dashboard.accept.assert_awaited_once()
    assert dashboard in ws_manager.restaurant_connections[RESTAURANT]
    assert diner in ws_manager.table_connections[(RESTAURANT, 4)]
    assert ws_manager.get_connection_count() == {"restaurant_connections": 1, "table_connections": 1}


async def test_disconnect_drops_empty_channels(ws_manager):
    dashboard = AsyncMock()
    diner = AsyncMock()
    await ws_manager.connect_restaurant(dashboard, RESTAURANT)
    await ws_manager.connect_table(diner, RESTAURANT, 1)

    ws_manager.disconnect(dashboard)
    ws_manager.disconnect(diner)
    # Unknown sockets are ignored
    ws_manager.disconnect(AsyncMock())

    assert ws_manager.restaurant_connections == {}
    assert ws_manager.table_connections == {}


async def test_order_placed_reaches_dashboard_and_its_table_only(ws_manager):
    dashboard = AsyncMock()
    same_table = AsyncMock()
    other_table = AsyncMock()
    await ws_manager.connect_restaurant(dashboard, RESTAURANT)
    await ws_manager.connect_table(same_table, RESTAURANT, 2)
    await ws_manager.connect_table(other_table, RESTAURANT, 3)

    order = order_payload(table_number=2)
    await ws_manager.send_order_placed(RESTAURANT, order)

    assert sent_messages(dashboard)[0]["type"] == "order_placed"
    assert sent_messages(dashboard)[0]["order"]["id"] == order["id"]
    assert sent_messages(same_table)[0]["type"] == "order_placed"
    other_table.send_text.assert_not_awaited()


async def test_takeaway_order_skips_table_channels(ws_manager):
    dashboard = AsyncMock()
    diner = AsyncMock()
    await ws_manager.connect_restaurant(dashboard, RESTAURANT)
    await ws_manager.connect_table(diner, RESTAURANT, 1)

    await ws_manager.send_order_updated(RESTAURANT, order_payload(), "placed")

    message = sent_messages(dashboard)[0]
    assert message["type"] == "order_updated"
    assert message["previous_status"] == "placed"
    diner.send_text.assert_not_awaited()


async def test_table_channel_omits_device_id(ws_manager):
    dashboard = AsyncMock()
    diner = AsyncMock()
    await ws_manager.connect_restaurant(dashboard, RESTAURANT)
    await ws_manager.connect_table(diner, RESTAURANT, 2)
    order = order_payload(table_number=2)

    await ws_manager.send_order_placed(RESTAURANT, order)
    await ws_manager.send_order_updated(RESTAURANT, order, "placed")

    for message in sent_messages(diner):
        assert "device_id" not in message["order"]
        assert "table_id" not in message["order"]
        assert message["order"]["guest_label"] == order["guest_label"]
        assert DEVICE_A not in json.dumps(message)
    assert sent_messages(dashboard)[0]["order"]["device_id"] == DEVICE_A


async def test_other_restaurants_hear_nothing(ws_manager):
    ours = AsyncMock()
    theirs = AsyncMock()
    await ws_manager.connect_restaurant(ours, RESTAURANT)
    await ws_manager.connect_restaurant(theirs, uuid.uuid4())

    sent = await ws_manager.broadcast_to_restaurant(RESTAURANT, {"type": "ping"})

    assert sent == 1
    theirs.send_text.assert_not_awaited()


async def test_dead_connections_are_removed(ws_manager):
    alive = AsyncMock()
    dead = AsyncMock()
    dead.send_text.side_effect = RuntimeError("socket closed")
    await ws_manager.connect_restaurant(alive, RESTAURANT)
    await ws_manager.connect_restaurant(dead, RESTAURANT)

    sent = await ws_manager.broadcast_to_restaurant(RESTAURANT, {"type": "order_deleted"})

    assert sent == 1
    assert ws_manager.restaurant_connections[RESTAURANT] == {alive}


async def test_menu_update_reaches_every_table(ws_manager):
    tables = [AsyncMock(), AsyncMock()]
    await ws_manager.connect_table(tables[0], RESTAURANT, 1)
    await ws_manager.connect_table(tables[1], RESTAURANT, 5)

    await ws_manager.send_menu_updated(RESTAURANT)

    for diner in tables:
        assert sent_messages(diner)[0]["type"] == "menu_updated"


async def test_table_clear_lists_order_ids(ws_manager):
    diner = AsyncMock()
    await ws_manager.connect_table(diner, RESTAURANT, 2)
    order_ids = [uuid.uuid4(), uuid.uuid4()]

    await ws_manager.send_table_orders_cleared(RESTAURANT, 2, order_ids)

    message = sent_messages(diner)[0]
    assert message["type"] == "table_orders_cleared"
    assert message["order_ids"] == [str(order_id) for order_id in order_ids]


def test_register_realtime_handlers_is_idempotent():
    bus = EventBus()

    register_realtime_handlers(bus)
    register_realtime_handlers(bus)

    assert all(len(handlers) == 1 for handlers in bus._subscribers.values())
    assert len(bus._subscribers) == len(HANDLERS)


async def test_events_are_forwarded_to_manager():
    bus = EventBus()
    register_realtime_handlers(bus)

    with patch("qrmenu.core.realtime.manager") as mock_manager:
        mock_manager.send_order_placed = AsyncMock()
        mock_manager.send_tables_updated = AsyncMock()

        await bus.publish(OrderPlaced(RESTAURANT, {"id": "order-3", "table_number": 1}))
        await bus.publish(TablesResized(RESTAURANT, 4, added=[4], removed=[]))

    mock_manager.send_order_placed.assert_awaited_once_with(RESTAURANT, {"id": "order-3", "table_number": 1})
    mock_manager.send_tables_updated.assert_awaited_once_with(RESTAURANT, 4)


# Socket endpoints
@pytest.fixture
def seated_restaurant(db):
    restaurant = make_restaurant(db, "Socket Cafe")
    resize_tables(db, restaurant, 2)
    db.commit()
    db.refresh(restaurant)
    return restaurant


@pytest.fixture
def ws_client(override_session):
    return TestClient(app)


def test_staff_socket_confirms_and_answers_ping(ws_client, seated_restaurant):
    token = create_access_token(seated_restaurant.owner_id, "owner")

    with ws_client.websocket_connect(
        f"{API}/ws/restaurants/{seated_restaurant.id}?token={token}"
    ) as websocket:
        confirmed = websocket.receive_json()
        assert confirmed["type"] == "connection_confirmed"
        assert confirmed["restaurant_name"] == "Socket Cafe"

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"


@pytest.mark.parametrize("token", [None, "not-a-token"])
def test_staff_socket_rejects_bad_token(ws_client, seated_restaurant, token):
    url = f"{API}/ws/restaurants/{seated_restaurant.id}"
    if token:
        url += f"?token={token}"

    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect(url) as websocket:
            websocket.receive_json()

    assert exc.value.code == 1008


def test_staff_socket_rejects_other_owner(ws_client, db, seated_restaurant):
    other = make_restaurant(db, "Elsewhere")
    token = create_access_token(other.owner_id, "owner")

    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect(
            f"{API}/ws/restaurants/{seated_restaurant.id}?token={token}"
        ) as websocket:
            websocket.receive_json()

    assert exc.value.code == 1008


def test_table_socket_confirms_known_table(ws_client, seated_restaurant):
    with ws_client.websocket_connect(
        f"{API}/ws/restaurants/{seated_restaurant.id}/tables/2"
    ) as websocket:
        confirmed = websocket.receive_json()

    assert confirmed["type"] == "connection_confirmed"
    assert confirmed["table_number"] == 2


def test_table_socket_rejects_unknown_table(ws_client, seated_restaurant):
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect(
            f"{API}/ws/restaurants/{seated_restaurant.id}/tables/9"
        ) as websocket:
            websocket.receive_json()

    assert exc.value.code == 1008


def test_connection_stats(ws_client):
    response = ws_client.get(f"{API}/ws/connections")

    assert response.status_code == 200
    assert set(response.json()) == {"restaurant_connections", "table_connections"}


@pytest.fixture
def tracked_sessions(engine):
    opened = []

    def get_tracked_session():
        with Session(engine) as session:
            opened.append(session)
            yield session

    app.dependency_overrides[get_session] = get_tracked_session
    yield opened
    app.dependency_overrides.clear()


def test_sockets_release_database_session_while_listening(tracked_sessions, seated_restaurant):
    token = create_access_token(seated_restaurant.owner_id, "owner")
    ws_client = TestClient(app)

    with ws_client.websocket_connect(
        f"{API}/ws/restaurants/{seated_restaurant.id}?token={token}"
    ) as websocket:
        assert websocket.receive_json()["type"] == "connection_confirmed"
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"
        assert not tracked_sessions[0].in_transaction()

    with ws_client.websocket_connect(
        f"{API}/ws/restaurants/{seated_restaurant.id}/tables/1"
    ) as websocket:
        assert websocket.receive_json()["type"] == "connection_confirmed"
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"
        assert not tracked_sessions[1].in_transaction()
