"""
User model for restaurant owners and staff
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class UserRole(str, Enum):
    """User roles for RBAC"""
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


class User(SQLModel, table=True):
    """Back-office user; diners never have accounts"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Authentication
    email: str = Field(index=True, unique=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)

    # Profile
    full_name: Optional[str] = Field(default=None, max_length=200)

    # RBAC
    role: UserRole = Field(default=UserRole.OWNER, nullable=False)
    restaurant_id: Optional[uuid.UUID] = Field(
        default=None,
        index=True,
        description="Restaurant a staff member works at (owners use restaurants.owner_id)"
    )

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
