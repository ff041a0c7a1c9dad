"""
Anonymous diner device endpoints
A device identifier stands in for an account: it owns orders, a bill and a checkout
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session
from typing import List, Optional
import structlog
import uuid

from qrmenu.core.config import get_settings
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import get_device_id, get_optional_device_id
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.events import DeviceCheckedOut, event_bus
from qrmenu.schemas.device import CheckoutResponse, DeviceResponse
from qrmenu.schemas.order import BillResponse, OrderResponse
from qrmenu.schemas.restaurant import RestaurantPublic
from qrmenu.services import orders as order_service
from qrmenu.services.menu import get_restaurant_or_404

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


def set_device_cookie(response: Response, device_id: str):
    response.set_cookie(
        key=settings.DEVICE_COOKIE_NAME,
        value=device_id,
        max_age=settings.DEVICE_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
    )


@router.post("", response_model=DeviceResponse)
async def register_device(
    response: Response,
    device_id: Optional[str] = Depends(get_optional_device_id)
):
    """
    Issue a device identifier, or refresh the cookie of a known one.

    Clients send it back in the X-Device-ID header or the device cookie.
    """
    if device_id is None:
        device_id = uuid.uuid4().hex
        logger.info("Issued device identifier")

    set_device_cookie(response, device_id)
    return DeviceResponse(device_id=device_id)


@router.get("/me/orders", response_model=List[OrderResponse])
async def list_my_orders(
    restaurant_id: Optional[uuid.UUID] = Query(default=None),
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """Orders this device placed, newest first"""
    orders = order_service.list_device_orders(session, device_id, restaurant_id)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/me/bill", response_model=BillResponse)
async def get_my_bill(
    restaurant_id: uuid.UUID = Query(...),
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """Running bill of this device at one restaurant"""
    restaurant = get_restaurant_or_404(session, restaurant_id)
    orders = order_service.list_device_orders(session, device_id, restaurant.id)

    return BillResponse(
        restaurant=RestaurantPublic.model_validate(restaurant),
        orders=[OrderResponse.model_validate(order) for order in orders],
        total_amount=order_service.orders_total(orders),
    )


@router.post("/me/checkout", response_model=CheckoutResponse)
async def checkout(
    response: Response,
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session)
):
    """Delete every order of this device and forget the identifier"""
    try:
        removed = order_service.checkout_device(session, device_id)
        session.commit()

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error during checkout", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check out"
        )

    response.delete_cookie(settings.DEVICE_COOKIE_NAME)
    if removed:
        await event_bus.publish(DeviceCheckedOut(device_id=device_id, removed_orders=removed))

    return CheckoutResponse(deleted_count=len(removed))
