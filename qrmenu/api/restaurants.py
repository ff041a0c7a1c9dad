"""
Restaurant API endpoints: metadata, full menu save, editor drafts and staff
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select, or_
from datetime import datetime
from typing import List
import structlog

from qrmenu.core.auth import hash_password
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import get_current_user, require_restaurant
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.events import MenuPublished, event_bus
from qrmenu.core.permissions import Permission, ensure_permission
from qrmenu.models import MenuDraft, Restaurant, User, UserRole
from qrmenu.schemas.menu import (
    ChangeCounts, MenuDocument, MenuDraftPayload, MenuDraftResponse, MenuSaveResponse,
)
from qrmenu.schemas.restaurant import RestaurantCreate, RestaurantResponse, RestaurantUpdate
from qrmenu.schemas.user import StaffCreate, UserResponse
from qrmenu.services.menu_sync import build_menu_document, save_menu
from qrmenu.services.qr import build_menu_url

logger = structlog.get_logger(__name__)
router = APIRouter()


def restaurant_response(restaurant: Restaurant) -> RestaurantResponse:
    return RestaurantResponse.model_validate({
        **restaurant.model_dump(),
        "menu_url": build_menu_url(restaurant.id),
    })


@router.post("/", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    restaurant_data: RestaurantCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Create a restaurant owned by the current user"""
    ensure_permission(user.role.value, Permission.RESTAURANT_EDIT)
    if user.role != UserRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can create restaurants")

    try:
        restaurant = Restaurant(owner_id=user.id, **restaurant_data.model_dump())
        session.add(restaurant)
        session.commit()
        session.refresh(restaurant)

        logger.info("Created restaurant", restaurant_id=str(restaurant.id), owner_id=str(user.id))
        return restaurant_response(restaurant)

    except (HTTPException, QRMenuError):
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error creating restaurant", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create restaurant"
        )


@router.get("/", response_model=List[RestaurantResponse])
async def list_my_restaurants(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Restaurants the current user owns or works at"""
    query = select(Restaurant).where(Restaurant.owner_id == user.id)
    if user.restaurant_id is not None:
        query = select(Restaurant).where(
            or_(Restaurant.owner_id == user.id, Restaurant.id == user.restaurant_id)
        )
    restaurants = session.exec(query.order_by(Restaurant.created_at)).all()
    return [restaurant_response(restaurant) for restaurant in restaurants]


@router.get("/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant(
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_VIEW))
):
    return restaurant_response(restaurant)


@router.patch("/{restaurant_id}", response_model=RestaurantResponse)
async def update_restaurant(
    restaurant_data: RestaurantUpdate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.RESTAURANT_EDIT)),
    session: Session = Depends(get_session)
):
    """Update restaurant metadata; only fields sent are changed"""
    try:
        for name, value in restaurant_data.model_dump(exclude_unset=True).items():
            if name == "name" and value is None:
                continue
            if name == "orders_enabled" and value is None:
                continue
            setattr(restaurant, name, value)

        restaurant.updated_at = datetime.utcnow()
        session.add(restaurant)
        session.commit()
        session.refresh(restaurant)

        logger.info("Updated restaurant", restaurant_id=str(restaurant.id))
        return restaurant_response(restaurant)

    except (HTTPException, QRMenuError):
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error updating restaurant", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update restaurant"
        )


@router.get("/{restaurant_id}/menu", response_model=MenuDocument)
async def get_editor_menu(
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Full menu for the editor, hidden items included"""
    return build_menu_document(session, restaurant.id)


@router.put("/{restaurant_id}/menu", response_model=MenuSaveResponse)
async def save_restaurant_menu(
    document: MenuDocument,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Replace the whole menu; anything absent from the document is deleted"""
    try:
        saved, changes = save_menu(session, restaurant, document)
        session.commit()

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error saving menu", restaurant_id=str(restaurant.id), error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save menu"
        )

    counts = changes.counts()
    await event_bus.publish(MenuPublished(restaurant_id=restaurant.id, changes=counts))

    return MenuSaveResponse(
        menu=saved,
        changes={name: ChangeCounts(**values) for name, values in counts.items()},
    )


@router.get("/{restaurant_id}/menu/draft", response_model=MenuDraftResponse)
async def get_menu_draft(
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    draft = session.exec(select(MenuDraft).where(MenuDraft.restaurant_id == restaurant.id)).first()
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No draft saved")
    return MenuDraftResponse(restaurant_id=restaurant.id, payload=draft.payload, updated_at=draft.updated_at)


@router.put("/{restaurant_id}/menu/draft", response_model=MenuDraftResponse)
async def put_menu_draft(
    draft_data: MenuDraftPayload,
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    """Store unsaved editor state, replacing the previous draft"""
    draft = session.exec(select(MenuDraft).where(MenuDraft.restaurant_id == restaurant.id)).first()
    if draft is None:
        draft = MenuDraft(restaurant_id=restaurant.id)
    draft.payload = draft_data.payload
    draft.updated_at = datetime.utcnow()

    session.add(draft)
    session.commit()
    session.refresh(draft)

    logger.debug("Saved menu draft", restaurant_id=str(restaurant.id))
    return MenuDraftResponse(restaurant_id=restaurant.id, payload=draft.payload, updated_at=draft.updated_at)


@router.delete("/{restaurant_id}/menu/draft", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_draft(
    restaurant: Restaurant = Depends(require_restaurant(Permission.MENU_EDIT)),
    session: Session = Depends(get_session)
):
    draft = session.exec(select(MenuDraft).where(MenuDraft.restaurant_id == restaurant.id)).first()
    if draft is not None:
        session.delete(draft)
        session.commit()
        logger.debug("Discarded menu draft", restaurant_id=str(restaurant.id))


@router.post("/{restaurant_id}/staff", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_staff_member(
    staff_data: StaffCreate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.STAFF_MANAGE)),
    session: Session = Depends(get_session)
):
    """Create a manager or staff account bound to the restaurant"""
    if staff_data.role == UserRole.OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Staff accounts must be manager or staff"
        )

    if session.exec(select(User).where(User.email == staff_data.email.lower())).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=staff_data.email.lower(),
        password_hash=hash_password(staff_data.password),
        full_name=staff_data.full_name,
        role=staff_data.role,
        restaurant_id=restaurant.id,
        is_active=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("Created staff account", user_id=str(user.id), restaurant_id=str(restaurant.id), role=user.role.value)
    return UserResponse.model_validate(user)
