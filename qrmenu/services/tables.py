"""
Table count reconciliation
"""

from datetime import datetime
from typing import List, Tuple

from sqlmodel import Session, select
import structlog

from qrmenu.models import Restaurant, RestaurantTable

logger = structlog.get_logger(__name__)


def list_tables(session: Session, restaurant: Restaurant) -> List[RestaurantTable]:
    return list(session.exec(
        select(RestaurantTable)
        .where(RestaurantTable.restaurant_id == restaurant.id)
        .order_by(RestaurantTable.table_number)
    ).all())


def resize_tables(session: Session, restaurant: Restaurant, count: int) -> Tuple[List[int], List[int]]:
    """
    Make the restaurant's tables exactly 1..count (no commit).

    Missing numbers are inserted and numbers above count are deleted,
    highest first. Repeating the same count changes nothing. Returns the
    added and removed table numbers.
    """
    if count < 1:
        raise ValueError("Table count must be at least 1")

    existing = list_tables(session, restaurant)
    present = {table.table_number for table in existing}

    removed = []
    for table in sorted(existing, key=lambda t: t.table_number, reverse=True):
        if table.table_number > count:
            session.delete(table)
            removed.append(table.table_number)
    session.flush()

    added = [number for number in range(1, count + 1) if number not in present]
    for number in added:
        session.add(RestaurantTable(restaurant_id=restaurant.id, table_number=number))

    if restaurant.table_count != count or added or removed:
        restaurant.table_count = count
        restaurant.updated_at = datetime.utcnow()
        session.add(restaurant)
    session.flush()

    logger.info(
        "Tables resized",
        restaurant_id=str(restaurant.id),
        table_count=count,
        added=len(added),
        removed=len(removed),
    )
    return added, removed
