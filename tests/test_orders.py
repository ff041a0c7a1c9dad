"""
Order placement, table views, status flow, deletes and device checkout
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from sqlmodel import select

from qrmenu.core.events import event_bus
from qrmenu.models import Order, OrderItem
from conftest import API, DEVICE_A, DEVICE_B, device_headers, find_item, find_option


def soup_cart(menu, quantity=2):
    soup = find_item(menu, "Soup")
    return {"lines": [{
        "menu_item_id": soup["id"],
        "variant_id": soup["variants"][1]["id"],
        "addon_option_ids": [find_option(menu, "Extras", "Cheese")["id"]],
        "quantity": quantity,
    }]}


def salad_cart(menu, quantity=1):
    return {"lines": [{"menu_item_id": find_item(menu, "Salad")["id"], "quantity": quantity}]}


async def place(client, restaurant, cart, device=DEVICE_A, table=None, notes=None):
    params = {"table": table} if table is not None else {}
    return await client.post(
        f"{API}/restaurants/{restaurant['id']}/orders",
        params=params,
        headers=device_headers(device),
        json={"cart": cart, "notes": notes},
    )


async def test_order_has_one_line_per_cart_line(client, db, restaurant, menu):
    cart = soup_cart(menu)
    cart["lines"].append({"menu_item_id": find_item(menu, "Salad")["id"], "quantity": 1})
    # Repeats the first line, so it is merged
    cart["lines"].append(dict(cart["lines"][0], quantity=1))

    response = await place(client, restaurant, cart, notes="No onions")

    assert response.status_code == 201, response.text
    order = response.json()
    assert order["status"] == "placed"
    assert order["table_number"] is None
    assert order["device_id"] == DEVICE_A
    assert order["notes"] == "No onions"
    assert order["version"] == 1
    assert len(order["items"]) == 2

    soup_line = order["items"][0]
    assert soup_line["item_name"] == "Soup"
    assert soup_line["variant_name"] == "Large"
    assert soup_line["quantity"] == 3
    assert Decimal(soup_line["price"]) == Decimal("7.50")
    assert soup_line["addons"][0]["option"] == "Cheese"

    line_sum = sum(Decimal(item["price"]) * item["quantity"] for item in order["items"])
    assert Decimal(order["total_amount"]) == line_sum == Decimal("29.50")

    assert len(db.exec(select(Order)).all()) == 1
    assert len(db.exec(select(OrderItem)).all()) == 2


async def test_empty_cart_is_rejected(client, db, restaurant, menu):
    response = await place(client, restaurant, {"lines": []})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_cart"
    assert db.exec(select(Order)).all() == []


async def test_repeated_lines_over_quantity_limit_are_rejected(client, db, restaurant, menu):
    cart = salad_cart(menu, quantity=60)
    cart["lines"].append(dict(cart["lines"][0]))

    response = await place(client, restaurant, cart)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_cart"
    assert db.exec(select(Order)).all() == []


async def test_order_requires_device(client, restaurant, menu):
    response = await client.post(
        f"{API}/restaurants/{restaurant['id']}/orders", json={"cart": salad_cart(menu)}
    )
    assert response.status_code == 400

    response = await client.post(
        f"{API}/restaurants/{restaurant['id']}/orders",
        headers={"X-Device-ID": "bad id!"},
        json={"cart": salad_cart(menu)},
    )
    assert response.status_code == 400


async def test_device_cookie_identifies_device(client, restaurant, menu):
    response = await client.post(f"{API}/devices")
    device_id = response.json()["device_id"]
    assert f"device_id={device_id}" in response.headers["set-cookie"]

    response = await client.post(
        f"{API}/restaurants/{restaurant['id']}/orders",
        headers={"Cookie": f"device_id={device_id}"},
        json={"cart": salad_cart(menu)},
    )
    assert response.status_code == 201
    assert response.json()["device_id"] == device_id


async def test_ordering_disabled(client, owner, restaurant, menu):
    await client.patch(
        f"{API}/restaurants/{restaurant['id']}", headers=owner["headers"], json={"orders_enabled": False}
    )

    response = await place(client, restaurant, salad_cart(menu))

    assert response.status_code == 409
    assert response.json()["code"] == "ordering_disabled"


async def test_unknown_table_is_404(client, restaurant, tables, menu):
    response = await place(client, restaurant, salad_cart(menu), table=42)

    assert response.status_code == 404


async def test_table_order_visible_in_its_table_view_only(client, restaurant, tables, menu):
    response = await place(client, restaurant, salad_cart(menu), table=2)
    assert response.status_code == 201
    order = response.json()
    assert order["table_number"] == 2
    assert order["table_id"] is not None
    await place(client, restaurant, salad_cart(menu), device=DEVICE_B)

    table_two = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables/2/orders")).json()
    table_one = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables/1/orders")).json()

    assert [o["id"] for o in table_two["orders"]] == [order["id"]]
    assert table_one["orders"] == []
    assert table_two["summary"]["order_count"] == 1


async def test_table_view_spans_devices(client, restaurant, tables, menu):
    await place(client, restaurant, salad_cart(menu), device=DEVICE_A, table=1)
    second = (await place(client, restaurant, salad_cart(menu, 2), device=DEVICE_B, table=1)).json()

    body = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables/1/orders")).json()

    assert len(body["orders"]) == 2
    assert body["summary"]["device_count"] == 2
    assert body["summary"]["item_count"] == 3
    assert Decimal(body["summary"]["total_amount"]) == Decimal("21.00")
    # Newest first
    assert body["orders"][0]["id"] == second["id"]
    assert body["orders"][0]["guest_label"] == second["guest_label"]


async def test_table_view_hides_device_identifiers(client, restaurant, tables, menu):
    mine = (await place(client, restaurant, salad_cart(menu), device=DEVICE_A, table=1)).json()
    await place(client, restaurant, salad_cart(menu), device=DEVICE_B, table=1)
    url = f"{API}/restaurants/{restaurant['id']}/tables/1/orders"

    response = await client.get(url)

    assert DEVICE_A not in response.text
    assert DEVICE_B not in response.text
    orders = response.json()["orders"]
    assert all("device_id" not in order and "table_id" not in order for order in orders)
    assert len({order["guest_label"] for order in orders}) == 2
    assert not any(order["is_mine"] for order in orders)

    flagged = (await client.get(url, headers=device_headers(DEVICE_A))).json()["orders"]
    assert [order["id"] for order in flagged if order["is_mine"]] == [mine["id"]]


async def test_guest_label_cannot_act_as_device(client, restaurant, tables, menu):
    await place(client, restaurant, salad_cart(menu), device=DEVICE_A, table=1)
    label = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables/1/orders")).json()["orders"][0]["guest_label"]

    response = await client.post(f"{API}/devices/me/checkout", headers=device_headers(label))
    assert response.status_code == 200
    assert response.json() == {"deleted_count": 0}

    response = await client.get(f"{API}/devices/me/orders", headers=device_headers(DEVICE_A))
    assert len(response.json()) == 1


async def advance(client, owner, order_id, version=None):
    params = {"version": version} if version is not None else {}
    return await client.post(f"{API}/orders/{order_id}/advance", headers=owner["headers"], params=params)


async def test_status_only_moves_forward(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()

    seen = []
    for _ in range(3):
        response = await advance(client, owner, order["id"])
        assert response.status_code == 200
        seen.append(response.json()["status"])
    assert seen == ["preparing", "ready", "completed"]

    final = response.json()
    assert final["version"] == 4
    assert final["preparing_at"] and final["ready_at"] and final["completed_at"]

    response = await advance(client, owner, order["id"])
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_status_transition"


@pytest.mark.parametrize("target", ["placed", "ready", "completed"])
async def test_status_patch_accepts_only_successor(client, owner, restaurant, menu, target):
    order = (await place(client, restaurant, salad_cart(menu))).json()

    response = await client.patch(
        f"{API}/orders/{order['id']}/status", headers=owner["headers"], json={"status": target}
    )

    assert response.status_code == 400


async def test_status_patch_to_successor(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()

    response = await client.patch(
        f"{API}/orders/{order['id']}/status", headers=owner["headers"], json={"status": "preparing", "version": 1}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "preparing"


async def test_stale_version_conflicts(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()
    await advance(client, owner, order["id"], version=1)

    response = await advance(client, owner, order["id"], version=1)

    assert response.status_code == 409
    assert response.json()["code"] == "version_conflict"


async def test_status_change_requires_staff_of_restaurant(client, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()

    response = await client.post(f"{API}/orders/{order['id']}/advance")
    assert response.status_code in (401, 403)


async def test_status_change_publishes_event(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()
    handler = AsyncMock()
    event_bus.subscribe("OrderStatusChanged", handler)
    try:
        await advance(client, owner, order["id"])
    finally:
        event_bus.unsubscribe("OrderStatusChanged", handler)

    event = handler.await_args.args[0]
    assert event.previous_status == "placed"
    assert event.order["status"] == "preparing"


async def test_dashboard_lists_and_filters(client, owner, restaurant, tables, menu):
    first = (await place(client, restaurant, salad_cart(menu), table=1)).json()
    await place(client, restaurant, soup_cart(menu), device=DEVICE_B)
    await advance(client, owner, first["id"])

    url = f"{API}/restaurants/{restaurant['id']}/orders"
    body = (await client.get(url, headers=owner["headers"])).json()
    assert body["order_count"] == 2
    assert Decimal(body["revenue_total"]) == Decimal("22.00")

    body = (await client.get(url, headers=owner["headers"], params={"status": "preparing"})).json()
    assert [o["id"] for o in body["orders"]] == [first["id"]]

    body = (await client.get(url, headers=owner["headers"], params={"table_only": True})).json()
    assert [o["table_number"] for o in body["orders"]] == [1]


async def test_grouped_dashboard(client, owner, restaurant, tables, menu):
    await place(client, restaurant, salad_cart(menu), table=3)
    await place(client, restaurant, salad_cart(menu), table=1)
    await place(client, restaurant, salad_cart(menu))

    body = (await client.get(
        f"{API}/restaurants/{restaurant['id']}/orders/grouped", headers=owner["headers"]
    )).json()

    assert list(body["groups"]) == ["1", "3", "no-table"]
    assert body["order_count"] == 3


async def test_clearing_table_removes_only_its_orders(client, owner, restaurant, tables, menu):
    await place(client, restaurant, salad_cart(menu), table=1)
    await place(client, restaurant, salad_cart(menu), device=DEVICE_B, table=1)
    kept = (await place(client, restaurant, salad_cart(menu), table=2)).json()
    loose = (await place(client, restaurant, salad_cart(menu))).json()

    response = await client.delete(
        f"{API}/restaurants/{restaurant['id']}/tables/1/orders", headers=owner["headers"]
    )

    assert response.status_code == 200
    assert response.json() == {"table_number": 1, "deleted_count": 2}
    remaining = (await client.get(f"{API}/restaurants/{restaurant['id']}/orders", headers=owner["headers"])).json()
    assert {o["id"] for o in remaining["orders"]} == {kept["id"], loose["id"]}


async def test_staff_cannot_clear_tables(client, owner, restaurant, tables):
    await client.post(
        f"{API}/restaurants/{restaurant['id']}/staff",
        headers=owner["headers"],
        json={"email": "waiter@example.com", "password": "password123"},
    )
    token = (await client.post(
        f"{API}/auth/login", json={"email": "waiter@example.com", "password": "password123"}
    )).json()["access_token"]

    response = await client.delete(
        f"{API}/restaurants/{restaurant['id']}/tables/1/orders",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


async def test_device_deletes_own_placed_order(client, owner, restaurant, menu):
    mine = (await place(client, restaurant, salad_cart(menu))).json()
    theirs = (await place(client, restaurant, salad_cart(menu), device=DEVICE_B)).json()

    response = await client.delete(f"{API}/orders/{theirs['id']}", headers=device_headers(DEVICE_A))
    assert response.status_code == 403

    response = await client.delete(f"{API}/orders/{mine['id']}", headers=device_headers(DEVICE_A))
    assert response.status_code == 204

    response = await client.get(f"{API}/orders/{mine['id']}", headers=device_headers(DEVICE_A))
    assert response.status_code == 404

    await advance(client, owner, theirs["id"])
    response = await client.delete(f"{API}/orders/{theirs['id']}", headers=device_headers(DEVICE_B))
    assert response.status_code == 409


async def test_staff_delete_single_order(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()
    await advance(client, owner, order["id"])

    response = await client.delete(
        f"{API}/restaurants/{restaurant['id']}/orders/{order['id']}", headers=owner["headers"]
    )
    assert response.status_code == 204

    body = (await client.get(f"{API}/restaurants/{restaurant['id']}/orders", headers=owner["headers"])).json()
    assert body["orders"] == []


async def test_my_orders_and_bill(client, owner, restaurant, menu):
    await place(client, restaurant, salad_cart(menu))
    await place(client, restaurant, soup_cart(menu, quantity=1))
    await place(client, restaurant, salad_cart(menu), device=DEVICE_B)

    response = await client.get(f"{API}/devices/me/orders", headers=device_headers(DEVICE_A))
    orders = response.json()
    assert len(orders) == 2
    assert orders[0]["items"][0]["item_name"] == "Soup"

    response = await client.get(
        f"{API}/devices/me/bill", headers=device_headers(DEVICE_A), params={"restaurant_id": restaurant["id"]}
    )
    bill = response.json()
    assert bill["restaurant"]["upi_id"] == "cafe@upi"
    assert Decimal(bill["total_amount"]) == Decimal("14.50")


async def test_checkout_clears_device(client, restaurant, tables, menu):
    await place(client, restaurant, salad_cart(menu), table=1)
    await place(client, restaurant, salad_cart(menu))
    other = (await place(client, restaurant, salad_cart(menu), device=DEVICE_B, table=1)).json()

    response = await client.post(f"{API}/devices/me/checkout", headers=device_headers(DEVICE_A))

    assert response.status_code == 200
    assert response.json() == {"deleted_count": 2}
    assert 'device_id=""' in response.headers["set-cookie"]

    response = await client.get(f"{API}/devices/me/orders", headers=device_headers(DEVICE_A))
    assert response.json() == []

    table_view = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables/1/orders")).json()
    assert [o["id"] for o in table_view["orders"]] == [other["id"]]


async def test_orders_survive_menu_changes(client, owner, restaurant, menu):
    order = (await place(client, restaurant, salad_cart(menu))).json()

    await client.put(
        f"{API}/restaurants/{restaurant['id']}/menu",
        headers=owner["headers"],
        json={"categories": [{"name": "Drinks", "items": [{"name": "Tea"}]}]},
    )

    response = await client.get(f"{API}/orders/{order['id']}", headers=device_headers(DEVICE_A))
    assert response.json()["items"][0]["item_name"] == "Salad"
