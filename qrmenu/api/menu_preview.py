"""
Public menu endpoints for diners (no login)
"""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import Optional
import structlog
import uuid

from qrmenu.core.database import get_session
from qrmenu.schemas.cart import Cart, CartQuote
from qrmenu.schemas.menu import PublicMenuResponse
from qrmenu.services.cart import price_cart
from qrmenu.services.menu import build_public_menu, get_restaurant_or_404

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/{restaurant_id}", response_model=PublicMenuResponse)
async def get_public_menu(
    restaurant_id: uuid.UUID,
    table: Optional[int] = Query(default=None, ge=1, description="Table number from the QR link"),
    session: Session = Depends(get_session)
):
    """Published menu; an unknown table number is a 404"""
    restaurant = get_restaurant_or_404(session, restaurant_id)
    return build_public_menu(session, restaurant, table)


@router.post("/{restaurant_id}/cart/quote", response_model=CartQuote)
async def quote_cart(
    restaurant_id: uuid.UUID,
    cart: Cart,
    session: Session = Depends(get_session)
):
    """Price a cart against the live menu without ordering"""
    restaurant = get_restaurant_or_404(session, restaurant_id)
    return price_cart(session, restaurant, cart)
