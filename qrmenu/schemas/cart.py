"""
Cart value types

A cart is owned by the diner's client and travels with each request; the
server never stores it. Operations return a new Cart.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Tuple
from decimal import Decimal
import uuid

from qrmenu.core.errors import InvalidCartError

MAX_LINE_QUANTITY = 99


class CartLine(BaseModel):
    menu_item_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    addon_option_ids: List[uuid.UUID] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1, le=MAX_LINE_QUANTITY)

    @field_validator("addon_option_ids")
    @classmethod
    def normalize_options(cls, value: List[uuid.UUID]) -> List[uuid.UUID]:
        # Option order carries no meaning, duplicates neither
        return sorted(set(value), key=str)

    @property
    def key(self) -> Tuple:
        """Identity of a line: same item, variant and options"""
        return (self.menu_item_id, self.variant_id, tuple(self.addon_option_ids))


class Cart(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def add(self, line: CartLine) -> "Cart":
        """Add a line, merging quantities into an identical line"""
        lines = []
        merged = False
        for existing in self.lines:
            if not merged and existing.key == line.key:
                quantity = existing.quantity + line.quantity
                if quantity > MAX_LINE_QUANTITY:
                    raise InvalidCartError(f"At most {MAX_LINE_QUANTITY} of one item per order")
                existing = existing.model_copy(update={"quantity": quantity})
                merged = True
            lines.append(existing)
        if not merged:
            lines.append(line)
        return Cart(lines=lines)

    def update_quantity(self, index: int, quantity: int) -> "Cart":
        """Set the quantity of a line; zero or less removes it"""
        if quantity <= 0:
            return self.remove(index)
        if quantity > MAX_LINE_QUANTITY:
            raise ValueError(f"Quantity cannot exceed {MAX_LINE_QUANTITY}")
        lines = list(self.lines)
        lines[index] = lines[index].model_copy(update={"quantity": quantity})
        return Cart(lines=lines)

    def remove(self, index: int) -> "Cart":
        lines = list(self.lines)
        del lines[index]
        return Cart(lines=lines)

    def clear(self) -> "Cart":
        return Cart()

    def merged(self) -> "Cart":
        """Collapse identical lines that arrived separately"""
        cart = Cart()
        for line in self.lines:
            cart = cart.add(line)
        return cart


class PricedAddon(BaseModel):
    addon_id: uuid.UUID
    addon: str
    option_id: uuid.UUID
    option: str
    price: Decimal


class PricedLine(BaseModel):
    """Cart line resolved against the live menu; a snapshot for the order"""
    menu_item_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    item_name: str
    variant_name: Optional[str] = None
    addons: List[PricedAddon] = Field(default_factory=list)
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartQuote(BaseModel):
    lines: List[PricedLine]
    item_count: int
    total: Decimal
