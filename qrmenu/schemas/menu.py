"""
Pydantic schemas for the menu: the editor document, per-entity CRUD and the
public menu diners see
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, List, Optional
from decimal import Decimal
from datetime import datetime
import uuid

from qrmenu.models.menu_addon import AddonType
from qrmenu.schemas.restaurant import RestaurantPublic


# ============================================================================
# Menu document (full save)
# ============================================================================

class AddonOptionDoc(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)


class AddonDoc(BaseModel):
    id: Optional[uuid.UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    addon_type: AddonType = AddonType.MULTIPLE
    options: List[AddonOptionDoc] = Field(default_factory=list)


class VariantDoc(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)


class MenuItemDoc(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    old_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    weight: Optional[str] = Field(default=None, max_length=50)
    dietary_type: Optional[str] = Field(default=None, max_length=50)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    is_visible: bool = True
    is_available: bool = True
    variants: List[VariantDoc] = Field(default_factory=list)
    addon_ids: List[uuid.UUID] = Field(default_factory=list, description="Add-ons of this document attached to the item")


class CategoryDoc(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    category_type: str = Field(default="food", max_length=50)
    items: List[MenuItemDoc] = Field(default_factory=list)


class MenuDocument(BaseModel):
    """Complete menu of a restaurant; list positions are display order"""
    categories: List[CategoryDoc] = Field(default_factory=list)
    addons: List[AddonDoc] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_references(self):
        seen = set()

        def claim(entity_id: Optional[uuid.UUID]):
            if entity_id is None:
                return
            if entity_id in seen:
                raise ValueError(f"Duplicate id in menu document: {entity_id}")
            seen.add(entity_id)

        addon_ids = set()
        for addon in self.addons:
            claim(addon.id)
            if addon.id is not None:
                addon_ids.add(addon.id)
            for option in addon.options:
                claim(option.id)

        for category in self.categories:
            claim(category.id)
            for item in category.items:
                claim(item.id)
                for variant in item.variants:
                    claim(variant.id)
                unknown = [str(a) for a in item.addon_ids if a not in addon_ids]
                if unknown:
                    raise ValueError(f"Item '{item.name}' references unknown add-ons: {', '.join(unknown)}")
        return self


class ChangeCounts(BaseModel):
    added: int = 0
    updated: int = 0
    removed: int = 0


class MenuSaveResponse(BaseModel):
    menu: MenuDocument
    changes: Dict[str, ChangeCounts]


# ============================================================================
# Category CRUD
# ============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category_type: str = Field(default="food", max_length=50)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category_type: Optional[str] = Field(default=None, max_length=50)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    category_type: str
    display_order: int
    created_at: datetime
    updated_at: Optional[datetime] = None


# ============================================================================
# Menu item CRUD
# ============================================================================

class VariantIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    old_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    weight: Optional[str] = Field(default=None, max_length=50)
    dietary_type: Optional[str] = Field(default=None, max_length=50)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    is_visible: bool = True
    is_available: bool = True
    variants: List[VariantIn] = Field(default_factory=list)
    addon_ids: List[uuid.UUID] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    """Partial update; variants and add-ons are replaced when sent"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    old_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    weight: Optional[str] = Field(default=None, max_length=50)
    dietary_type: Optional[str] = Field(default=None, max_length=50)
    image_url: Optional[str] = Field(default=None, max_length=1000)
    is_visible: Optional[bool] = None
    is_available: Optional[bool] = None
    category_id: Optional[uuid.UUID] = None
    variants: Optional[List[VariantIn]] = None
    addon_ids: Optional[List[uuid.UUID]] = None


class VariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    price: Decimal
    display_order: int


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    old_price: Optional[Decimal] = None
    weight: Optional[str] = None
    dietary_type: Optional[str] = None
    image_url: Optional[str] = None
    is_visible: bool
    is_available: bool
    display_order: int
    variants: List[VariantResponse] = Field(default_factory=list)
    addon_ids: List[uuid.UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None


class ImageUploadResponse(BaseModel):
    item_id: uuid.UUID
    image_url: str


# ============================================================================
# Draft editor state
# ============================================================================

class MenuDraftPayload(BaseModel):
    payload: dict


class MenuDraftResponse(BaseModel):
    restaurant_id: uuid.UUID
    payload: dict
    updated_at: Optional[datetime] = None


# ============================================================================
# Public menu
# ============================================================================

class PublicAddonOption(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal


class PublicAddon(BaseModel):
    id: uuid.UUID
    title: str
    addon_type: AddonType
    options: List[PublicAddonOption]


class PublicVariant(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal


class PublicMenuItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    old_price: Optional[Decimal] = None
    weight: Optional[str] = None
    dietary_type: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool
    variants: List[PublicVariant]
    addons: List[PublicAddon]


class PublicCategory(BaseModel):
    id: uuid.UUID
    name: str
    category_type: str
    items: List[PublicMenuItem]


class PublicMenuResponse(BaseModel):
    restaurant: RestaurantPublic
    table_number: Optional[int] = None
    orders_enabled: bool
    menu_url: str
    categories: List[PublicCategory]
