"""
Cart pricing against the live menu
"""

from decimal import Decimal
from typing import Dict, List
import uuid

from sqlmodel import Session, select
import structlog

from qrmenu.core.errors import InvalidCartError
from qrmenu.models import (
    AddonOption, AddonType, MenuCategory, MenuItem, MenuItemAddon, MenuItemAddonMapping,
    MenuItemVariant, Restaurant,
)
from qrmenu.schemas.cart import Cart, CartLine, CartQuote, PricedAddon, PricedLine

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


def _price_line(session: Session, restaurant: Restaurant, line: CartLine) -> PricedLine:
    item = session.get(MenuItem, line.menu_item_id)
    category = session.get(MenuCategory, item.category_id) if item else None
    if item is None or category is None or category.restaurant_id != restaurant.id:
        raise InvalidCartError(f"Menu item {line.menu_item_id} is not on this menu")
    if not item.is_visible or not item.is_available:
        raise InvalidCartError(f"{item.name} is not available right now")

    unit_price = item.price
    variant_name = None
    if line.variant_id is not None:
        variant = session.get(MenuItemVariant, line.variant_id)
        if variant is None or variant.menu_item_id != item.id:
            raise InvalidCartError(f"Variant {line.variant_id} does not belong to {item.name}")
        unit_price = variant.price
        variant_name = variant.name

    priced_addons: List[PricedAddon] = []
    if line.addon_option_ids:
        mapped_addon_ids = set(session.exec(
            select(MenuItemAddonMapping.addon_id).where(MenuItemAddonMapping.menu_item_id == item.id)
        ).all())

        chosen_per_addon: Dict[uuid.UUID, int] = {}
        for option_id in line.addon_option_ids:
            option = session.get(AddonOption, option_id)
            if option is None or option.addon_id not in mapped_addon_ids:
                raise InvalidCartError(f"Add-on option {option_id} is not offered for {item.name}")

            addon = session.get(MenuItemAddon, option.addon_id)
            chosen_per_addon[addon.id] = chosen_per_addon.get(addon.id, 0) + 1
            if addon.addon_type == AddonType.SINGLE and chosen_per_addon[addon.id] > 1:
                raise InvalidCartError(f"Choose only one option for {addon.title}")

            priced_addons.append(PricedAddon(
                addon_id=addon.id,
                addon=addon.title,
                option_id=option.id,
                option=option.name,
                price=option.price,
            ))
            unit_price += option.price

    unit_price = Decimal(unit_price).quantize(CENTS)
    return PricedLine(
        menu_item_id=item.id,
        variant_id=line.variant_id,
        item_name=item.name,
        variant_name=variant_name,
        addons=priced_addons,
        quantity=line.quantity,
        unit_price=unit_price,
        line_total=(unit_price * line.quantity).quantize(CENTS),
    )


def price_cart(session: Session, restaurant: Restaurant, cart: Cart) -> CartQuote:
    """
    Resolve every cart line against the restaurant's current menu.

    Identical lines are merged first. Raises InvalidCartError when a line
    cannot be ordered; an empty cart prices to zero.
    """
    cart = cart.merged()
    lines = [_price_line(session, restaurant, line) for line in cart.lines]
    total = sum((line.line_total for line in lines), Decimal("0.00"))

    logger.debug("Priced cart", restaurant_id=str(restaurant.id), lines=len(lines), total=str(total))
    return CartQuote(lines=lines, item_count=cart.item_count, total=total.quantize(CENTS))
