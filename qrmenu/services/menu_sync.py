"""
Full-document menu save with explicit change tracking

The editor sends the complete menu. Each entity type is diffed once against
the stored rows into added / updated / removed sets, and the sets are
applied inside the caller's transaction, parents before children on the way
in and children before parents on the way out. Anything absent from the
document is deleted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Type
import uuid

from sqlmodel import Session, SQLModel, select
import structlog

from qrmenu.core.errors import MenuConflictError
from qrmenu.models import (
    AddonOption, MenuCategory, MenuItem, MenuItemAddon, MenuItemAddonMapping,
    MenuItemVariant, Restaurant,
)
from qrmenu.schemas.menu import (
    AddonDoc, AddonOptionDoc, CategoryDoc, MenuDocument, MenuItemDoc, VariantDoc,
)

logger = structlog.get_logger(__name__)


@dataclass
class ChangeSet:
    """Rows to insert, rows whose columns changed, rows to delete"""
    added: List[SQLModel] = field(default_factory=list)
    updated: List[SQLModel] = field(default_factory=list)
    removed: List[SQLModel] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)

    def counts(self) -> Dict[str, int]:
        return {"added": len(self.added), "updated": len(self.updated), "removed": len(self.removed)}


@dataclass
class MenuChanges:
    categories: ChangeSet = field(default_factory=ChangeSet)
    items: ChangeSet = field(default_factory=ChangeSet)
    variants: ChangeSet = field(default_factory=ChangeSet)
    addons: ChangeSet = field(default_factory=ChangeSet)
    options: ChangeSet = field(default_factory=ChangeSet)
    mappings: ChangeSet = field(default_factory=ChangeSet)

    def counts(self) -> Dict[str, Dict[str, int]]:
        return {
            "categories": self.categories.counts(),
            "items": self.items.counts(),
            "variants": self.variants.counts(),
            "addons": self.addons.counts(),
            "options": self.options.counts(),
            "mappings": self.mappings.counts(),
        }

    @property
    def is_empty(self) -> bool:
        return all(change_set.is_empty for change_set in (
            self.categories, self.items, self.variants, self.addons, self.options, self.mappings
        ))


@dataclass
class StoredMenu:
    """Current rows of one restaurant's menu, keyed by id"""
    categories: Dict[uuid.UUID, MenuCategory]
    items: Dict[uuid.UUID, MenuItem]
    variants: Dict[uuid.UUID, MenuItemVariant]
    addons: Dict[uuid.UUID, MenuItemAddon]
    options: Dict[uuid.UUID, AddonOption]
    mappings: Dict[Tuple[uuid.UUID, uuid.UUID], MenuItemAddonMapping]


def load_stored_menu(session: Session, restaurant_id: uuid.UUID) -> StoredMenu:
    categories = session.exec(
        select(MenuCategory).where(MenuCategory.restaurant_id == restaurant_id)
    ).all()
    category_ids = [category.id for category in categories]

    items = session.exec(
        select(MenuItem).where(MenuItem.category_id.in_(category_ids))
    ).all() if category_ids else []
    item_ids = [item.id for item in items]

    variants = session.exec(
        select(MenuItemVariant).where(MenuItemVariant.menu_item_id.in_(item_ids))
    ).all() if item_ids else []
    mappings = session.exec(
        select(MenuItemAddonMapping).where(MenuItemAddonMapping.menu_item_id.in_(item_ids))
    ).all() if item_ids else []

    addons = session.exec(
        select(MenuItemAddon).where(MenuItemAddon.restaurant_id == restaurant_id)
    ).all()
    addon_ids = [addon.id for addon in addons]

    options = session.exec(
        select(AddonOption).where(AddonOption.addon_id.in_(addon_ids))
    ).all() if addon_ids else []

    return StoredMenu(
        categories={row.id: row for row in categories},
        items={row.id: row for row in items},
        variants={row.id: row for row in variants},
        addons={row.id: row for row in addons},
        options={row.id: row for row in options},
        mappings={(row.menu_item_id, row.addon_id): row for row in mappings},
    )


def assign_ids(document: MenuDocument) -> MenuDocument:
    """Copy of the document where every entity carries an id"""
    document = document.model_copy(deep=True)
    for addon in document.addons:
        addon.id = addon.id or uuid.uuid4()
        for option in addon.options:
            option.id = option.id or uuid.uuid4()
    for category in document.categories:
        category.id = category.id or uuid.uuid4()
        for item in category.items:
            item.id = item.id or uuid.uuid4()
            for variant in item.variants:
                variant.id = variant.id or uuid.uuid4()
    return document


def drop_unmapped_addons(document: MenuDocument) -> MenuDocument:
    """Add-ons no item refers to are not kept"""
    referenced = {
        addon_id
        for category in document.categories
        for item in category.items
        for addon_id in item.addon_ids
    }
    document.addons = [addon for addon in document.addons if addon.id in referenced]
    return document


def _ensure_not_foreign(session: Session, model: Type[SQLModel], ids: Iterable[uuid.UUID], kind: str):
    """Ids new to this restaurant must not already exist elsewhere"""
    ids = list(ids)
    if not ids:
        return
    taken = session.exec(select(model.id).where(model.id.in_(ids))).all()
    if taken:
        raise MenuConflictError(f"{kind} {taken[0]} belongs to another restaurant")


def _diff(
    change_set: ChangeSet,
    stored: Dict[Any, SQLModel],
    wanted: Dict[Any, Dict[str, Any]],
    factory: Type[SQLModel],
):
    """Fill change_set from stored rows and wanted column values"""
    for key, values in wanted.items():
        row = stored.get(key)
        if row is None:
            change_set.added.append(factory(**values))
            continue
        changed = False
        for name, value in values.items():
            if getattr(row, name) != value:
                setattr(row, name, value)
                changed = True
        if changed:
            change_set.updated.append(row)

    for key, row in stored.items():
        if key not in wanted:
            change_set.removed.append(row)


def compute_changes(
    session: Session,
    restaurant_id: uuid.UUID,
    document: MenuDocument,
    stored: Optional[StoredMenu] = None,
) -> MenuChanges:
    """
    Diff a fully-identified document against the stored menu.

    Rows in `updated` are modified in place; nothing is written until
    apply_changes runs.
    """
    stored = stored or load_stored_menu(session, restaurant_id)

    wanted_categories: Dict[uuid.UUID, Dict[str, Any]] = {}
    wanted_items: Dict[uuid.UUID, Dict[str, Any]] = {}
    wanted_variants: Dict[uuid.UUID, Dict[str, Any]] = {}
    wanted_addons: Dict[uuid.UUID, Dict[str, Any]] = {}
    wanted_options: Dict[uuid.UUID, Dict[str, Any]] = {}
    wanted_mappings: Dict[Tuple[uuid.UUID, uuid.UUID], Dict[str, Any]] = {}

    for addon in document.addons:
        wanted_addons[addon.id] = {
            "id": addon.id,
            "restaurant_id": restaurant_id,
            "title": addon.title,
            "addon_type": addon.addon_type,
        }
        for position, option in enumerate(addon.options):
            wanted_options[option.id] = {
                "id": option.id,
                "addon_id": addon.id,
                "name": option.name,
                "price": option.price,
                "display_order": position,
            }

    for category_position, category in enumerate(document.categories):
        wanted_categories[category.id] = {
            "id": category.id,
            "restaurant_id": restaurant_id,
            "name": category.name,
            "category_type": category.category_type,
            "display_order": category_position,
        }
        for item_position, item in enumerate(category.items):
            wanted_items[item.id] = {
                "id": item.id,
                "category_id": category.id,
                "name": item.name,
                "description": item.description,
                "price": item.price,
                "old_price": item.old_price,
                "weight": item.weight,
                "dietary_type": item.dietary_type,
                "image_url": item.image_url,
                "is_visible": item.is_visible,
                "is_available": item.is_available,
                "display_order": item_position,
            }
            for variant_position, variant in enumerate(item.variants):
                wanted_variants[variant.id] = {
                    "id": variant.id,
                    "menu_item_id": item.id,
                    "name": variant.name,
                    "price": variant.price,
                    "display_order": variant_position,
                }
            for addon_position, addon_id in enumerate(dict.fromkeys(item.addon_ids)):
                wanted_mappings[(item.id, addon_id)] = {
                    "menu_item_id": item.id,
                    "addon_id": addon_id,
                    "display_order": addon_position,
                }

    _ensure_not_foreign(session, MenuCategory, set(wanted_categories) - set(stored.categories), "Category")
    _ensure_not_foreign(session, MenuItem, set(wanted_items) - set(stored.items), "Menu item")
    _ensure_not_foreign(session, MenuItemVariant, set(wanted_variants) - set(stored.variants), "Variant")
    _ensure_not_foreign(session, MenuItemAddon, set(wanted_addons) - set(stored.addons), "Add-on")
    _ensure_not_foreign(session, AddonOption, set(wanted_options) - set(stored.options), "Add-on option")

    changes = MenuChanges()
    _diff(changes.categories, stored.categories, wanted_categories, MenuCategory)
    _diff(changes.items, stored.items, wanted_items, MenuItem)
    _diff(changes.variants, stored.variants, wanted_variants, MenuItemVariant)
    _diff(changes.addons, stored.addons, wanted_addons, MenuItemAddon)
    _diff(changes.options, stored.options, wanted_options, AddonOption)
    _diff(changes.mappings, stored.mappings, wanted_mappings, MenuItemAddonMapping)
    return changes


def apply_changes(session: Session, changes: MenuChanges) -> None:
    """Write a computed change set; the caller commits"""
    now = datetime.utcnow()

    def upsert(change_set: ChangeSet):
        for row in change_set.added:
            session.add(row)
        for row in change_set.updated:
            if hasattr(row, "updated_at"):
                row.updated_at = now
            session.add(row)

    def delete(change_set: ChangeSet):
        for row in change_set.removed:
            session.delete(row)

    # Parents in
    upsert(changes.categories)
    upsert(changes.addons)
    session.flush()
    upsert(changes.items)
    upsert(changes.options)
    session.flush()
    upsert(changes.variants)
    upsert(changes.mappings)

    # Children out
    delete(changes.mappings)
    delete(changes.variants)
    delete(changes.options)
    session.flush()
    delete(changes.items)
    session.flush()
    delete(changes.addons)
    delete(changes.categories)
    session.flush()


def save_menu(session: Session, restaurant: Restaurant, document: MenuDocument) -> Tuple[MenuDocument, MenuChanges]:
    """Replace the restaurant's menu with the document (no commit)"""
    document = drop_unmapped_addons(assign_ids(document))
    changes = compute_changes(session, restaurant.id, document)
    apply_changes(session, changes)

    restaurant.updated_at = datetime.utcnow()
    session.add(restaurant)

    logger.info("Menu saved", restaurant_id=str(restaurant.id), changes=changes.counts())
    return document, changes


def build_menu_document(session: Session, restaurant_id: uuid.UUID) -> MenuDocument:
    """Editor view of the stored menu, hidden items included"""
    stored = load_stored_menu(session, restaurant_id)

    def ordered(rows: Iterable[SQLModel]) -> List[SQLModel]:
        return sorted(rows, key=lambda row: (row.display_order, row.created_at or datetime.min))

    options_by_addon: Dict[uuid.UUID, List[AddonOption]] = {}
    for option in stored.options.values():
        options_by_addon.setdefault(option.addon_id, []).append(option)

    variants_by_item: Dict[uuid.UUID, List[MenuItemVariant]] = {}
    for variant in stored.variants.values():
        variants_by_item.setdefault(variant.menu_item_id, []).append(variant)

    mappings_by_item: Dict[uuid.UUID, List[MenuItemAddonMapping]] = {}
    for mapping in stored.mappings.values():
        mappings_by_item.setdefault(mapping.menu_item_id, []).append(mapping)

    items_by_category: Dict[uuid.UUID, List[MenuItem]] = {}
    for item in stored.items.values():
        items_by_category.setdefault(item.category_id, []).append(item)

    addons = [
        AddonDoc(
            id=addon.id,
            title=addon.title,
            addon_type=addon.addon_type,
            options=[
                AddonOptionDoc(id=option.id, name=option.name, price=option.price)
                for option in ordered(options_by_addon.get(addon.id, []))
            ],
        )
        for addon in sorted(stored.addons.values(), key=lambda row: (row.created_at or datetime.min, row.title))
    ]

    categories = [
        CategoryDoc(
            id=category.id,
            name=category.name,
            category_type=category.category_type,
            items=[
                MenuItemDoc(
                    id=item.id,
                    name=item.name,
                    description=item.description,
                    price=item.price,
                    old_price=item.old_price,
                    weight=item.weight,
                    dietary_type=item.dietary_type,
                    image_url=item.image_url,
                    is_visible=item.is_visible,
                    is_available=item.is_available,
                    variants=[
                        VariantDoc(id=variant.id, name=variant.name, price=variant.price)
                        for variant in ordered(variants_by_item.get(item.id, []))
                    ],
                    addon_ids=[
                        mapping.addon_id
                        for mapping in sorted(mappings_by_item.get(item.id, []), key=lambda row: row.display_order)
                    ],
                )
                for item in ordered(items_by_category.get(category.id, []))
            ],
        )
        for category in ordered(stored.categories.values())
    ]

    return MenuDocument(categories=categories, addons=addons)


def stale_addon_ids(session: Session, restaurant_id: uuid.UUID) -> Set[uuid.UUID]:
    """Add-ons of the restaurant that no item maps to any more"""
    stored = load_stored_menu(session, restaurant_id)
    mapped = {addon_id for (_, addon_id) in stored.mappings}
    return set(stored.addons) - mapped


def delete_unmapped_addons(session: Session, restaurant_id: uuid.UUID) -> int:
    """Delete add-ons (and their options) no item maps to (no commit)"""
    stale = stale_addon_ids(session, restaurant_id)
    for addon_id in stale:
        for option in session.exec(select(AddonOption).where(AddonOption.addon_id == addon_id)).all():
            session.delete(option)
        session.flush()
        session.delete(session.get(MenuItemAddon, addon_id))
        logger.info("Deleted unmapped add-on", addon_id=str(addon_id))
    session.flush()
    return len(stale)
