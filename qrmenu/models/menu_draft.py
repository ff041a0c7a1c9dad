"""
Unsaved menu editor state, one draft per restaurant
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import Optional
import uuid


class MenuDraft(SQLModel, table=True):

    __tablename__ = "menu_drafts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    restaurant_id: uuid.UUID = Field(
        foreign_key="restaurants.id",
        unique=True,
        index=True,
        ondelete="CASCADE"
    )
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
