"""
Pydantic schemas for restaurant tables
"""

from pydantic import BaseModel, Field, field_validator
from typing import List
import uuid

from qrmenu.core.config import get_settings


class TableCountUpdate(BaseModel):
    count: int = Field(..., ge=1, strict=True, description="Desired number of tables")

    @field_validator("count")
    @classmethod
    def within_limit(cls, value: int) -> int:
        limit = get_settings().MAX_TABLES
        if value > limit:
            raise ValueError(f"Table count cannot exceed {limit}")
        return value


class TableResponse(BaseModel):
    id: uuid.UUID
    table_number: int
    menu_url: str
    qr_code_url: str


class TablesResponse(BaseModel):
    restaurant_id: uuid.UUID
    table_count: int
    tables: List[TableResponse]
    added: List[int] = Field(default_factory=list)
    removed: List[int] = Field(default_factory=list)
