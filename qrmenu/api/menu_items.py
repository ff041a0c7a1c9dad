"""
Menu items API endpoints
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlmodel import Session, select
from typing import List, Optional
from datetime import datetime
import structlog
import uuid

from qrmenu.api.menu_categories import get_category_or_404
from qrmenu.core.config import get_settings
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import require_restaurant
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.permissions import Permission
from qrmenu.models import (
    MenuCategory, MenuItem, MenuItemAddon, MenuItemAddonMapping, MenuItemVariant, Restaurant,
)
from qrmenu.schemas.menu import (
    ImageUploadResponse, MenuItemCreate, MenuItemResponse, MenuItemUpdate, VariantIn, VariantResponse,
)
from qrmenu.services import ordering
from qrmenu.services.menu_sync import delete_unmapped_addons
from qrmenu.services.storage import get_storage, image_extension, image_key

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


def get_item_or_404(session: Session, restaurant_id: uuid.UUID, item_id: uuid.UUID) -> MenuItem:
    item = session.get(MenuItem, item_id)
    category = session.get(MenuCategory, item.category_id) if item else None
    if item is None or category is None or category.restaurant_id != restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )
    return item


def list_item_rows(session: Session, category_id: uuid.UUID) -> List[MenuItem]:
    return list(session.exec(select(MenuItem).where(MenuItem.category_id == category_id)).all())


def item_response(session: Session, item: MenuItem) -> MenuItemResponse:
    variants = session.exec(
        select(MenuItemVariant)
        .where(MenuItemVariant.menu_item_id == item.id)
        .order_by(MenuItemVariant.display_order)
    ).all()
    mappings = session.exec(
        select(MenuItemAddonMapping)
        .where(MenuItemAddonMapping.menu_item_id == item.id)
        .order_by(MenuItemAddonMapping.display_order)
    ).all()

    return MenuItemResponse(
        id=item.id,
        category_id=item.category_id,
        name=item.name,
        description=item.description,
        price=item.price,
        old_price=item.old_price,
        weight=item.weight,
        dietary_type=item.dietary_type,
        image_url=item.image_url,
        is_visible=item.is_visible,
        is_available=item.is_available,
        display_order=item.display_order,
        variants=[VariantResponse.model_validate(variant) for variant in variants],
        addon_ids=[mapping.addon_id for mapping in mappings],
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def replace_variants(session: Session, item: MenuItem, variants: List[VariantIn]):
    """Variants are replaced wholesale"""
    for variant in session.exec(select(MenuItemVariant).where(MenuItemVariant.menu_item_id == item.id)).all():
        session.delete(variant)
    session.flush()
    for position, variant in enumerate(variants):
        session.add(MenuItemVariant(
            menu_item_id=item.id,
            name=variant.name,
            price=variant.price,
            display_order=position,
        ))


def replace_addons(session: Session, restaurant_id: uuid.UUID, item: MenuItem, addon_ids: List[uuid.UUID]):
    """Re-map the item's add-ons; add-ons left unmapped are deleted"""
    addon_ids = list(dict.fromkeys(addon_ids))
    for addon_id in addon_ids:
        addon = session.get(MenuItemAddon, addon_id)
        if addon is None or addon.restaurant_id != restaurant_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Add-on {addon_id} not found"
            )

    for mapping in session.exec(
        select(MenuItemAddonMapping).where(MenuItemAddonMapping.menu_item_id == item.id)
    ).all():
        session.delete(mapping)
    session.flush()
    for position, addon_id in enumerate(addon_ids):
        session.add(MenuItemAddonMapping(menu_item_id=item.id, addon_id=addon_id, display_order=position))
    session.flush()

    delete_unmapped_addons(session, restaurant_id)


@router.get("/{restaurant_id}/categories/{category_id}/items", response_model=List[MenuItemResponse])
async def list_menu_items(
    category_id: uuid.UUID,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """List a category's items in display order, hidden ones included"""
    category = get_category_or_404(session, restaurant.id, category_id)
    items = ordering.sort_siblings(list_item_rows(session, category.id))
    return [item_response(session, item) for item in items]


@router.post(
    "/{restaurant_id}/categories/{category_id}/items",
    response_model=MenuItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_menu_item(
    category_id: uuid.UUID,
    item_data: MenuItemCreate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Create a menu item at the end of its category"""
    category = get_category_or_404(session, restaurant.id, category_id)

    try:
        item = MenuItem(
            category_id=category.id,
            display_order=ordering.next_position(list_item_rows(session, category.id)),
            **item_data.model_dump(exclude={"variants", "addon_ids"}),
        )
        session.add(item)
        session.flush()

        replace_variants(session, item, item_data.variants)
        if item_data.addon_ids:
            replace_addons(session, restaurant.id, item, item_data.addon_ids)

        session.commit()
        session.refresh(item)

        logger.info("Created menu item", item_id=str(item.id), category_id=str(category.id))
        return item_response(session, item)

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error creating menu item", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create menu item"
        )


@router.get("/{restaurant_id}/items/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(
    item_id: uuid.UUID,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    return item_response(session, get_item_or_404(session, restaurant.id, item_id))


@router.patch("/{restaurant_id}/items/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: uuid.UUID,
    item_data: MenuItemUpdate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Update a menu item; moving it to another category appends it there"""
    item = get_item_or_404(session, restaurant.id, item_id)

    try:
        updates = item_data.model_dump(exclude_unset=True, exclude={"variants", "addon_ids", "category_id"})
        for name, value in updates.items():
            if value is None and name in ("name", "price", "is_visible", "is_available"):
                continue
            setattr(item, name, value)

        old_category_id: Optional[uuid.UUID] = None
        if item_data.category_id is not None and item_data.category_id != item.category_id:
            target = get_category_or_404(session, restaurant.id, item_data.category_id)
            old_category_id = item.category_id
            item.display_order = ordering.next_position(list_item_rows(session, target.id))
            item.category_id = target.id

        if item_data.variants is not None:
            replace_variants(session, item, item_data.variants)
        if item_data.addon_ids is not None:
            replace_addons(session, restaurant.id, item, item_data.addon_ids)

        item.updated_at = datetime.utcnow()
        session.add(item)
        session.flush()

        if old_category_id is not None:
            ordering.renumber(session, list_item_rows(session, old_category_id))

        session.commit()
        session.refresh(item)

        logger.info("Updated menu item", item_id=str(item_id))
        return item_response(session, item)

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error updating menu item", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update menu item"
        )


@router.delete("/{restaurant_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_item(
    item_id: uuid.UUID,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Delete a menu item; its siblings are renumbered"""
    item = get_item_or_404(session, restaurant.id, item_id)
    category_id = item.category_id

    try:
        replace_variants(session, item, [])
        replace_addons(session, restaurant.id, item, [])
        session.delete(item)
        session.flush()

        ordering.renumber(session, list_item_rows(session, category_id))
        session.commit()

        logger.info("Deleted menu item", item_id=str(item_id))

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error deleting menu item", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete menu item"
        )


@router.post("/{restaurant_id}/items/{item_id}/move", response_model=List[MenuItemResponse])
async def move_menu_item(
    item_id: uuid.UUID,
    direction: str = Query(..., pattern="^(up|down)$"),
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Swap an item with its neighbour; returns the category's new order"""
    item = get_item_or_404(session, restaurant.id, item_id)

    moved = ordering.move(session, list_item_rows(session, item.category_id), item, direction)
    session.commit()

    logger.info("Moved menu item", item_id=str(item_id), direction=direction, moved=moved)
    items = ordering.sort_siblings(list_item_rows(session, item.category_id))
    return [item_response(session, row) for row in items]


@router.post("/{restaurant_id}/items/{item_id}/image", response_model=ImageUploadResponse)
async def upload_menu_item_image(
    item_id: uuid.UUID,
    file: UploadFile = File(...),
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session),
    storage=Depends(get_storage),
):
    """Store the item's image as {item_id}.{ext}, replacing any earlier one"""
    item = get_item_or_404(session, restaurant.id, item_id)

    extension = image_extension(file.content_type)
    if extension is None:
        logger.warning("Rejected image upload", item_id=str(item_id), content_type=file.content_type)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JPEG, PNG, WebP or GIF images are accepted"
        )

    body = await file.read()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(body) > settings.MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {settings.MAX_IMAGE_BYTES} bytes"
        )

    try:
        image_url = await storage.save(image_key(item.id, extension), body, file.content_type)
    except Exception as e:
        logger.error("Error storing menu item image", item_id=str(item_id), error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to store image"
        )

    item.image_url = image_url
    item.updated_at = datetime.utcnow()
    session.add(item)
    session.commit()

    logger.info("Uploaded menu item image", item_id=str(item_id), url=image_url)
    return ImageUploadResponse(item_id=item.id, image_url=image_url)
