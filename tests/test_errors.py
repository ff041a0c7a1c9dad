"""
Error translation and schema readiness checks
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session
import uuid

from qrmenu.core.database import get_session, verify_schema
from qrmenu.core.errors import (
    InvalidCartError, OrderVersionConflictError, SchemaNotReadyError,
    is_missing_schema_error, raise_if_schema_missing, register_exception_handlers,
)
from qrmenu.main import app
from conftest import API, device_headers


def db_error(error_class, message):
    return error_class("SELECT 1", {}, Exception(message))


@pytest.mark.parametrize("message", [
    "no such table: orders",
    "no such column: orders.version",
    'relation "menu_items" does not exist',
    'column restaurants.upi_id does not exist',
])
def test_missing_schema_messages_are_recognized(message):
    assert is_missing_schema_error(db_error(ProgrammingError, message))


def test_other_errors_are_not_schema_errors():
    assert not is_missing_schema_error(db_error(IntegrityError, "UNIQUE constraint failed: users.email"))


def test_raise_if_schema_missing():
    with pytest.raises(SchemaNotReadyError):
        raise_if_schema_missing(db_error(OperationalError, "no such table: restaurants"))

    # Anything else is left to the caller
    raise_if_schema_missing(db_error(IntegrityError, "NOT NULL constraint failed"))
    raise_if_schema_missing(ValueError("no such table"))


@pytest.fixture
def empty_engine():
    bare = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    yield bare
    bare.dispose()


def test_verify_schema_on_empty_database(empty_engine):
    with pytest.raises(SchemaNotReadyError) as exc:
        verify_schema(empty_engine)

    assert "restaurants" in exc.value.detail


def test_verify_schema_on_migrated_database(engine):
    verify_schema(engine)


@pytest.fixture
async def unmigrated_client(empty_engine):
    def get_empty_session():
        with Session(empty_engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_empty_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


async def test_missing_tables_answer_503(unmigrated_client):
    response = await unmigrated_client.get(f"{API}/menu/{uuid.uuid4()}")

    assert response.status_code == 503
    assert response.json()["code"] == "schema_not_ready"


async def test_missing_tables_answer_503_when_ordering(unmigrated_client):
    response = await unmigrated_client.post(
        f"{API}/restaurants/{uuid.uuid4()}/orders",
        headers=device_headers(),
        json={"cart": {"lines": [{"menu_item_id": str(uuid.uuid4())}]}},
    )

    assert response.status_code == 503


async def test_domain_errors_render_detail_and_code():
    error_app = FastAPI()
    register_exception_handlers(error_app)

    @error_app.get("/cart")
    async def broken_cart():
        raise InvalidCartError("Item is sold out")

    @error_app.get("/order")
    async def stale_order():
        raise OrderVersionConflictError("Order was changed by someone else")

    async with AsyncClient(transport=ASGITransport(app=error_app), base_url="http://test") as error_client:
        cart = await error_client.get("/cart")
        order = await error_client.get("/order")

    assert cart.status_code == 400
    assert cart.json() == {"detail": "Item is sold out", "code": "invalid_cart"}
    assert order.status_code == 409
    assert order.json()["code"] == "version_conflict"


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "qrmenu-api"}
