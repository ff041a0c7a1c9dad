"""
Table count reconciliation and QR downloads
"""

import pytest
from sqlmodel import select
import uuid

from qrmenu.models import RestaurantTable
from qrmenu.services.qr import build_menu_url, generate_qr_png, qr_filename
from qrmenu.services.orders import list_restaurant_orders, list_table_orders
from qrmenu.services.tables import resize_tables
from conftest import API, device_headers, find_item
from test_menu_sync import make_restaurant

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def table_numbers(db, restaurant):
    return [
        row.table_number
        for row in db.exec(
            select(RestaurantTable)
            .where(RestaurantTable.restaurant_id == restaurant.id)
            .order_by(RestaurantTable.table_number)
        ).all()
    ]


@pytest.mark.parametrize("sizes", [[5], [5, 2], [2, 5], [3, 3], [1, 7, 4, 4, 1]])
def test_resize_yields_exactly_one_to_n(db, sizes):
    restaurant = make_restaurant(db)

    for size in sizes:
        resize_tables(db, restaurant, size)
        db.commit()

    final = sizes[-1]
    assert table_numbers(db, restaurant) == list(range(1, final + 1))
    assert restaurant.table_count == final


def test_resize_reports_added_and_removed(db):
    restaurant = make_restaurant(db)

    added, removed = resize_tables(db, restaurant, 4)
    db.commit()
    assert (added, removed) == ([1, 2, 3, 4], [])

    added, removed = resize_tables(db, restaurant, 2)
    db.commit()
    assert (added, removed) == ([], [4, 3])

    added, removed = resize_tables(db, restaurant, 2)
    assert (added, removed) == ([], [])


def test_resize_fills_gaps(db):
    restaurant = make_restaurant(db)
    db.add(RestaurantTable(restaurant_id=restaurant.id, table_number=2))
    db.commit()

    added, _ = resize_tables(db, restaurant, 3)
    db.commit()

    assert added == [1, 3]
    assert table_numbers(db, restaurant) == [1, 2, 3]


def test_resize_rejects_zero(db):
    restaurant = make_restaurant(db)

    with pytest.raises(ValueError):
        resize_tables(db, restaurant, 0)


def test_resize_leaves_other_restaurants_alone(db):
    first = make_restaurant(db, "First")
    second = make_restaurant(db, "Second")
    resize_tables(db, first, 3)
    resize_tables(db, second, 2)
    db.commit()

    resize_tables(db, first, 1)
    db.commit()

    assert table_numbers(db, second) == [1, 2]


async def test_set_table_count_endpoint(client, owner, restaurant):
    url = f"{API}/restaurants/{restaurant['id']}/tables"

    response = await client.put(url, headers=owner["headers"], json={"count": 3})
    assert response.status_code == 200
    body = response.json()
    assert body["table_count"] == 3
    assert [table["table_number"] for table in body["tables"]] == [1, 2, 3]
    assert body["added"] == [1, 2, 3]
    assert body["tables"][0]["menu_url"] == f"http://menu.test/menu-preview/{restaurant['id']}?table=1"
    assert body["tables"][0]["qr_code_url"] == f"{API}/restaurants/{restaurant['id']}/tables/1/qr"

    response = await client.put(url, headers=owner["headers"], json={"count": 3})
    assert response.json()["added"] == []
    assert response.json()["removed"] == []

    response = await client.get(url, headers=owner["headers"])
    assert [table["table_number"] for table in response.json()["tables"]] == [1, 2, 3]

    response = await client.get(f"{API}/restaurants/{restaurant['id']}", headers=owner["headers"])
    assert response.json()["table_count"] == 3


@pytest.mark.parametrize("count", [0, -2, 501, "3", 2.5, None])
async def test_set_table_count_validation(client, owner, restaurant, count):
    response = await client.put(
        f"{API}/restaurants/{restaurant['id']}/tables", headers=owner["headers"], json={"count": count}
    )
    assert response.status_code == 422


def test_menu_urls():
    assert build_menu_url("abc", base_url="https://menu.example/") == "https://menu.example/menu-preview/abc"
    assert build_menu_url("abc", 7, base_url="https://menu.example") == "https://menu.example/menu-preview/abc?table=7"


def test_qr_filenames():
    assert qr_filename() == "menu-qr-code.png"
    assert qr_filename(4) == "table-4-qr.png"


def test_generate_qr_png():
    png = generate_qr_png("https://menu.example/menu-preview/abc?table=1")

    assert png.startswith(PNG_MAGIC)


async def test_download_menu_qr(client, restaurant):
    response = await client.get(f"{API}/restaurants/{restaurant['id']}/qr")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-disposition"] == 'attachment; filename="menu-qr-code.png"'
    assert response.content.startswith(PNG_MAGIC)


async def test_download_table_qr(client, restaurant, tables):
    response = await client.get(f"{API}/restaurants/{restaurant['id']}/tables/2/qr")

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="table-2-qr.png"'
    assert response.content.startswith(PNG_MAGIC)

    response = await client.get(f"{API}/restaurants/{restaurant['id']}/tables/9/qr")
    assert response.status_code == 404


async def test_shrinking_keeps_orders_of_removed_tables(client, db, owner, restaurant, tables, menu):
    response = await client.post(
        f"{API}/restaurants/{restaurant['id']}/orders",
        params={"table": 3},
        headers=device_headers(),
        json={"cart": {"lines": [{"menu_item_id": find_item(menu, "Salad")["id"]}]}},
    )
    assert response.status_code == 201
    order_id = uuid.UUID(response.json()["id"])

    response = await client.put(
        f"{API}/restaurants/{restaurant['id']}/tables", headers=owner["headers"], json={"count": 2}
    )
    assert response.json()["removed"] == [3]

    restaurant_id = uuid.UUID(restaurant["id"])
    assert [order.id for order in list_restaurant_orders(db, restaurant_id)] == [order_id]
    kept = list_table_orders(db, restaurant_id, 3)
    assert [order.id for order in kept] == [order_id]
    assert kept[0].table_number == 3
