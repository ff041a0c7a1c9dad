"""
Diner-facing menu assembly
"""

from typing import Dict, List, Optional
import uuid

from sqlmodel import Session, select
from fastapi import HTTPException, status

from qrmenu.models import Restaurant, RestaurantTable
from qrmenu.schemas.menu import (
    PublicAddon, PublicAddonOption, PublicCategory, PublicMenuItem, PublicMenuResponse, PublicVariant,
)
from qrmenu.schemas.restaurant import RestaurantPublic
from qrmenu.services.menu_sync import build_menu_document
from qrmenu.services.qr import build_menu_url


def get_restaurant_or_404(session: Session, restaurant_id: uuid.UUID) -> Restaurant:
    restaurant = session.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")
    return restaurant


def get_table_or_404(session: Session, restaurant_id: uuid.UUID, table_number: int) -> RestaurantTable:
    """A table link must name an existing table of the restaurant"""
    table = session.exec(
        select(RestaurantTable).where(
            RestaurantTable.restaurant_id == restaurant_id,
            RestaurantTable.table_number == table_number,
        )
    ).first()
    if table is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Table {table_number} not found for this restaurant",
        )
    return table


def build_public_menu(
    session: Session,
    restaurant: Restaurant,
    table_number: Optional[int] = None,
) -> PublicMenuResponse:
    """Published menu: hidden items left out, unavailable items flagged"""
    if table_number is not None:
        get_table_or_404(session, restaurant.id, table_number)

    document = build_menu_document(session, restaurant.id)

    addons: Dict[uuid.UUID, PublicAddon] = {
        addon.id: PublicAddon(
            id=addon.id,
            title=addon.title,
            addon_type=addon.addon_type,
            options=[PublicAddonOption(id=o.id, name=o.name, price=o.price) for o in addon.options],
        )
        for addon in document.addons
    }

    categories: List[PublicCategory] = []
    for category in document.categories:
        items = [
            PublicMenuItem(
                id=item.id,
                name=item.name,
                description=item.description,
                price=item.price,
                old_price=item.old_price,
                weight=item.weight,
                dietary_type=item.dietary_type,
                image_url=item.image_url,
                is_available=item.is_available,
                variants=[PublicVariant(id=v.id, name=v.name, price=v.price) for v in item.variants],
                addons=[addons[addon_id] for addon_id in item.addon_ids if addon_id in addons],
            )
            for item in category.items
            if item.is_visible
        ]
        if items:
            categories.append(PublicCategory(
                id=category.id,
                name=category.name,
                category_type=category.category_type,
                items=items,
            ))

    return PublicMenuResponse(
        restaurant=RestaurantPublic.model_validate(restaurant),
        table_number=table_number,
        orders_enabled=restaurant.orders_enabled,
        menu_url=build_menu_url(restaurant.id, table_number),
        categories=categories,
    )
