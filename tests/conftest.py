"""
Test configuration for pytest
"""

import os
import tempfile
import uuid
from typing import Generator

# Test environment variables, set before the application reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["VERIFY_SCHEMA_ON_STARTUP"] = "false"
os.environ["PUBLIC_BASE_URL"] = "http://menu.test"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="qrmenu-media-")
os.environ["STORAGE_BACKEND"] = "local"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

import qrmenu.models  # noqa: F401
from qrmenu.core.database import get_session, init_db
from qrmenu.main import app

API = "/api/v1"
DEVICE_A = "device-aaaa1111"
DEVICE_B = "device-bbbb2222"


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test, shared by every session"""
    test_engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="function")
def override_session(engine):
    def get_test_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_test_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_session):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


async def register(client: AsyncClient, email: str, password: str = "password123") -> dict:
    response = await client.post(f"{API}/auth/register", json={
        "email": email,
        "password": password,
        "full_name": "Test Owner",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "user_id": body["user_id"],
        "token": body["access_token"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


@pytest.fixture
async def owner(client):
    return await register(client, "owner@example.com")


@pytest.fixture
async def restaurant(client, owner):
    response = await client.post(f"{API}/restaurants/", headers=owner["headers"], json={
        "name": "Cafe Test",
        "description": "Breakfast all day",
        "phone": "555-0100",
        "upi_id": "cafe@upi",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def tables(client, owner, restaurant):
    response = await client.put(
        f"{API}/restaurants/{restaurant['id']}/tables",
        headers=owner["headers"],
        json={"count": 3},
    )
    assert response.status_code == 200, response.text
    return response.json()


def menu_document() -> dict:
    """Two categories; add-ons carry client-generated ids so items can refer to them"""
    extras_id = str(uuid.uuid4())
    sauce_id = str(uuid.uuid4())
    return {
        "addons": [
            {
                "id": extras_id,
                "title": "Extras",
                "addon_type": "multiple",
                "options": [
                    {"name": "Croutons", "price": "0.50"},
                    {"name": "Cheese", "price": "1.00"},
                ],
            },
            {
                "id": sauce_id,
                "title": "Sauce",
                "addon_type": "single",
                "options": [
                    {"name": "Ketchup", "price": "0.00"},
                    {"name": "Mayo", "price": "0.25"},
                ],
            },
        ],
        "categories": [
            {
                "name": "Starters",
                "items": [
                    {
                        "name": "Soup",
                        "price": "5.00",
                        "variants": [
                            {"name": "Small", "price": "4.00"},
                            {"name": "Large", "price": "6.50"},
                        ],
                        "addon_ids": [extras_id],
                    },
                    {"name": "Salad", "price": "7.00"},
                ],
            },
            {
                "name": "Mains",
                "category_type": "food",
                "items": [
                    {"name": "Burger", "price": "12.00", "addon_ids": [sauce_id]},
                    {"name": "Secret Special", "price": "20.00", "is_visible": False},
                    {"name": "Fish", "price": "15.00", "is_available": False},
                ],
            },
        ],
    }


@pytest.fixture
async def menu(client, owner, restaurant):
    """Saved menu document with server-assigned ids"""
    response = await client.put(
        f"{API}/restaurants/{restaurant['id']}/menu",
        headers=owner["headers"],
        json=menu_document(),
    )
    assert response.status_code == 200, response.text
    return response.json()["menu"]


def find_item(menu: dict, name: str) -> dict:
    for category in menu["categories"]:
        for item in category["items"]:
            if item["name"] == name:
                return item
    raise KeyError(name)


def find_option(menu: dict, addon_title: str, option_name: str) -> dict:
    addon = next(addon for addon in menu["addons"] if addon["title"] == addon_title)
    return next(option for option in addon["options"] if option["name"] == option_name)


def device_headers(device_id: str = DEVICE_A) -> dict:
    return {"X-Device-ID": device_id}
