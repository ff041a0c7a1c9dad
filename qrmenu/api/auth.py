"""
User authentication API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from datetime import datetime
import structlog

from qrmenu.core.auth import create_access_token, hash_password, verify_password
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import get_current_user
from qrmenu.models.user import User, UserRole
from qrmenu.schemas.token import TokenResponse
from qrmenu.schemas.user import UserCreate, UserLogin, UserResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


def email_taken(session: Session, email: str) -> bool:
    return session.exec(select(User).where(User.email == email.lower())).first() is not None


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    session: Session = Depends(get_session)
):
    """Register a restaurant owner"""
    if email_taken(session, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email.lower(),
        password_hash=hash_password(user_data.password),
        full_name=user_data.full_name,
        role=UserRole.OWNER,
        is_active=True,
    )

    session.add(new_user)
    session.commit()
    session.refresh(new_user)

    logger.info("User registered", user_id=str(new_user.id))

    access_token = create_access_token(user_id=new_user.id, role=new_user.role.value)
    return TokenResponse(access_token=access_token, user_id=str(new_user.id), role=new_user.role.value)


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_data: UserLogin,
    session: Session = Depends(get_session)
):
    """Login user"""
    user = session.exec(
        select(User).where(User.email == login_data.email.lower())
    ).first()

    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    # Update last login
    user.last_login_at = datetime.utcnow()
    session.add(user)
    session.commit()

    logger.info("User logged in", user_id=str(user.id))

    access_token = create_access_token(user_id=user.id, role=user.role.value)
    return TokenResponse(access_token=access_token, user_id=str(user.id), role=user.role.value)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user info"""
    return UserResponse.model_validate(user)
