"""
Menu categories API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, select
from typing import List
from datetime import datetime
import structlog
import uuid

from qrmenu.core.database import get_session
from qrmenu.core.dependencies import require_restaurant
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.permissions import Permission
from qrmenu.models import (
    MenuCategory, MenuItem, MenuItemAddonMapping, MenuItemVariant, Restaurant,
)
from qrmenu.schemas.menu import CategoryCreate, CategoryResponse, CategoryUpdate
from qrmenu.services import ordering
from qrmenu.services.menu_sync import delete_unmapped_addons

logger = structlog.get_logger(__name__)
router = APIRouter()


def get_category_or_404(session: Session, restaurant_id: uuid.UUID, category_id: uuid.UUID) -> MenuCategory:
    category = session.get(MenuCategory, category_id)
    if category is None or category.restaurant_id != restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu category not found"
        )
    return category


def list_category_rows(session: Session, restaurant_id: uuid.UUID) -> List[MenuCategory]:
    return list(session.exec(
        select(MenuCategory).where(MenuCategory.restaurant_id == restaurant_id)
    ).all())


@router.get("/{restaurant_id}/categories", response_model=List[CategoryResponse])
async def list_categories(
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """List categories in display order"""
    return ordering.sort_siblings(list_category_rows(session, restaurant.id))


@router.post("/{restaurant_id}/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Create a category after the existing ones"""
    try:
        siblings = list_category_rows(session, restaurant.id)
        category = MenuCategory(
            restaurant_id=restaurant.id,
            name=category_data.name,
            category_type=category_data.category_type,
            display_order=ordering.next_position(siblings),
        )
        session.add(category)
        session.commit()
        session.refresh(category)

        logger.info("Created menu category", category_id=str(category.id), restaurant_id=str(restaurant.id))
        return category

    except (HTTPException, QRMenuError):
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error creating menu category", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create menu category"
        )


@router.patch("/{restaurant_id}/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    category_data: CategoryUpdate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Update a menu category"""
    category = get_category_or_404(session, restaurant.id, category_id)

    if category_data.name is not None:
        category.name = category_data.name
    if category_data.category_type is not None:
        category.category_type = category_data.category_type

    category.updated_at = datetime.utcnow()
    session.add(category)
    session.commit()
    session.refresh(category)

    logger.info("Updated menu category", category_id=str(category_id))
    return category


@router.delete("/{restaurant_id}/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Delete a category with its items; the remaining categories are renumbered"""
    category = get_category_or_404(session, restaurant.id, category_id)

    try:
        items = session.exec(select(MenuItem).where(MenuItem.category_id == category.id)).all()
        item_ids = [item.id for item in items]
        if item_ids:
            for variant in session.exec(
                select(MenuItemVariant).where(MenuItemVariant.menu_item_id.in_(item_ids))
            ).all():
                session.delete(variant)
            for mapping in session.exec(
                select(MenuItemAddonMapping).where(MenuItemAddonMapping.menu_item_id.in_(item_ids))
            ).all():
                session.delete(mapping)
            session.flush()
        for item in items:
            session.delete(item)
        session.flush()

        session.delete(category)
        session.flush()
        delete_unmapped_addons(session, restaurant.id)

        ordering.renumber(session, list_category_rows(session, restaurant.id))
        session.commit()

        logger.info("Deleted menu category", category_id=str(category_id), items=len(items))

    except (HTTPException, QRMenuError):
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error deleting menu category", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete menu category"
        )


@router.post("/{restaurant_id}/categories/{category_id}/move", response_model=List[CategoryResponse])
async def move_category(
    category_id: uuid.UUID,
    direction: str = Query(..., pattern="^(up|down)$"),
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Swap a category with its neighbour; returns the new order"""
    category = get_category_or_404(session, restaurant.id, category_id)

    siblings = list_category_rows(session, restaurant.id)
    moved = ordering.move(session, siblings, category, direction)
    session.commit()

    logger.info("Moved menu category", category_id=str(category_id), direction=direction, moved=moved)
    return ordering.sort_siblings(list_category_rows(session, restaurant.id))
