"""
Authentication, device and restaurant-access dependencies for FastAPI
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from typing import Optional
import re
import uuid
import structlog

from qrmenu.core.auth import verify_token
from qrmenu.core.config import get_settings
from qrmenu.core.database import get_session
from qrmenu.core.permissions import Permission, ensure_permission
from qrmenu.models.restaurant import Restaurant
from qrmenu.models.user import User, UserRole

logger = structlog.get_logger(__name__)
settings = get_settings()
security = HTTPBearer()

_DEVICE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> uuid.UUID:
    """Get current user ID from JWT token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise credentials_exception

    logger.debug("User authenticated", user_id=str(user_id))
    return user_id


async def get_current_user(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> User:
    """Load the active user behind the token"""
    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def can_access_restaurant(user: User, restaurant: Restaurant) -> bool:
    """Owners reach their own restaurants, staff the one they are bound to"""
    if restaurant.owner_id == user.id:
        return True
    return user.role != UserRole.OWNER and user.restaurant_id == restaurant.id


def load_restaurant_for_user(
    session: Session,
    restaurant_id: uuid.UUID,
    user: User,
    permission: Permission,
) -> Restaurant:
    """Fetch a restaurant, enforcing membership and role permission"""
    restaurant = session.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")

    if not can_access_restaurant(user, restaurant):
        logger.warning(
            "Restaurant access denied",
            user_id=str(user.id),
            restaurant_id=str(restaurant_id),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this restaurant")

    ensure_permission(user.role.value, permission)
    return restaurant


def require_restaurant(permission: Permission):
    """Dependency factory resolving the {restaurant_id} path parameter"""

    async def dependency(
        restaurant_id: uuid.UUID,
        user: User = Depends(get_current_user),
        session: Session = Depends(get_session),
    ) -> Restaurant:
        return load_restaurant_for_user(session, restaurant_id, user, permission)

    return dependency


def read_device_id(request: Request) -> Optional[str]:
    """Device identifier from the header, falling back to the cookie"""
    device_id = request.headers.get(settings.DEVICE_HEADER) or request.cookies.get(settings.DEVICE_COOKIE_NAME)
    if not device_id:
        return None

    device_id = device_id.strip()
    if not _DEVICE_ID_PATTERN.match(device_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed device identifier")
    return device_id


async def get_optional_device_id(request: Request) -> Optional[str]:
    return read_device_id(request)


async def get_device_id(request: Request) -> str:
    """Device identifier required by device-scoped endpoints"""
    device_id = read_device_id(request)
    if device_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Device identifier required; call POST /devices first",
        )
    return device_id
