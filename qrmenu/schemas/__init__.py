"""
Schemas module
"""

from qrmenu.schemas.token import TokenResponse
from qrmenu.schemas.user import StaffCreate, UserCreate, UserLogin, UserResponse
from qrmenu.schemas.cart import Cart, CartLine, CartQuote, PricedLine

__all__ = [
    "TokenResponse",
    "StaffCreate",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "Cart",
    "CartLine",
    "CartQuote",
    "PricedLine",
]
