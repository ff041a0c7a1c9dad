"""
Restaurant tables and QR code downloads
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session
import structlog
import uuid

from qrmenu.core.config import get_settings
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import require_restaurant
from qrmenu.core.errors import QRMenuError, raise_if_schema_missing
from qrmenu.core.events import TablesResized, event_bus
from qrmenu.core.permissions import Permission
from qrmenu.models import Restaurant, RestaurantTable
from qrmenu.schemas.table import TableCountUpdate, TableResponse, TablesResponse
from qrmenu.services.menu import get_restaurant_or_404, get_table_or_404
from qrmenu.services.qr import build_menu_url, generate_qr_png, qr_filename
from qrmenu.services.tables import list_tables, resize_tables

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


def table_response(table: RestaurantTable) -> TableResponse:
    return TableResponse(
        id=table.id,
        table_number=table.table_number,
        menu_url=build_menu_url(table.restaurant_id, table.table_number),
        qr_code_url=(
            f"{settings.API_V1_PREFIX}/restaurants/{table.restaurant_id}/tables/{table.table_number}/qr"
        ),
    )


def png_download(png: bytes, filename: str) -> Response:
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{restaurant_id}/tables", response_model=TablesResponse)
async def get_tables(
    restaurant: Restaurant = Depends(require_restaurant(Permission.ORDERS_VIEW)),
    session: Session = Depends(get_session)
):
    """Tables in number order with their menu links"""
    tables = list_tables(session, restaurant)
    return TablesResponse(
        restaurant_id=restaurant.id,
        table_count=restaurant.table_count,
        tables=[table_response(table) for table in tables],
    )


@router.put("/{restaurant_id}/tables", response_model=TablesResponse)
async def set_table_count(
    table_data: TableCountUpdate,
    restaurant: Restaurant = Depends(require_restaurant(Permission.TABLES_EDIT)),
    session: Session = Depends(get_session)
):
    """
    Make the restaurant's tables exactly 1..count.

    Tables above the new count are deleted; their past orders keep the
    table number they were placed with.
    """
    try:
        added, removed = resize_tables(session, restaurant, table_data.count)
        session.commit()
        session.refresh(restaurant)

    except (HTTPException, QRMenuError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise_if_schema_missing(e)
        logger.error("Error resizing tables", restaurant_id=str(restaurant.id), error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update tables"
        )

    if added or removed:
        await event_bus.publish(TablesResized(
            restaurant_id=restaurant.id,
            table_count=restaurant.table_count,
            added=added,
            removed=removed,
        ))

    tables = list_tables(session, restaurant)
    return TablesResponse(
        restaurant_id=restaurant.id,
        table_count=restaurant.table_count,
        tables=[table_response(table) for table in tables],
        added=added,
        removed=removed,
    )


@router.get("/{restaurant_id}/qr")
async def download_menu_qr(
    restaurant_id: uuid.UUID,
    session: Session = Depends(get_session)
):
    """QR code PNG of the restaurant's menu link"""
    restaurant = get_restaurant_or_404(session, restaurant_id)
    return png_download(generate_qr_png(build_menu_url(restaurant.id)), qr_filename())


@router.get("/{restaurant_id}/tables/{table_number}/qr")
async def download_table_qr(
    restaurant_id: uuid.UUID,
    table_number: int,
    session: Session = Depends(get_session)
):
    """QR code PNG of one table's menu link"""
    restaurant = get_restaurant_or_404(session, restaurant_id)
    table = get_table_or_404(session, restaurant.id, table_number)
    return png_download(
        generate_qr_png(build_menu_url(restaurant.id, table.table_number)),
        qr_filename(table.table_number),
    )
