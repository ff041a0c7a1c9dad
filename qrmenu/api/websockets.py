"""
WebSocket endpoints for real-time updates
"""

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlmodel import Session, select
from datetime import datetime
from typing import Optional
import structlog
import uuid

from qrmenu.core.auth import verify_token
from qrmenu.core.database import get_session
from qrmenu.core.dependencies import load_restaurant_for_user
from qrmenu.core.permissions import Permission
from qrmenu.core.websocket_manager import manager
from qrmenu.models import Restaurant, RestaurantTable, User

logger = structlog.get_logger(__name__)
router = APIRouter()


async def _listen(websocket: WebSocket, **context):
    """Answer pings until the client goes away"""
    while True:
        try:
            data = await websocket.receive_json()
            logger.debug("Received WebSocket message", message_type=data.get("type"), **context)

            if data.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "timestamp": datetime.utcnow().isoformat()
                })

        except WebSocketDisconnect:
            manager.disconnect(websocket)
            logger.info("WebSocket client disconnected", **context)
            break


def _staff_restaurant(session: Session, restaurant_id: uuid.UUID, token: Optional[str]) -> Optional[Restaurant]:
    if not token:
        return None

    user_id = verify_token(token)
    user = session.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        return None

    try:
        return load_restaurant_for_user(session, restaurant_id, user, Permission.ORDERS_VIEW)
    except HTTPException:
        return None


@router.websocket("/restaurants/{restaurant_id}")
async def websocket_restaurant(
    websocket: WebSocket,
    restaurant_id: uuid.UUID,
    token: Optional[str] = Query(default=None),
    session: Session = Depends(get_session)
):
    """Staff dashboard channel; the token must grant orders:view"""
    try:
        restaurant = _staff_restaurant(session, restaurant_id, token)
        # Release the pooled connection; the socket may stay open for hours
        session.close()
        if restaurant is None:
            logger.warning("Rejected restaurant WebSocket", restaurant_id=str(restaurant_id))
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await manager.connect_restaurant(websocket, restaurant.id)

        await websocket.send_json({
            "type": "connection_confirmed",
            "restaurant_id": str(restaurant.id),
            "restaurant_name": restaurant.name,
            "timestamp": datetime.utcnow().isoformat()
        })

        await _listen(websocket, restaurant_id=str(restaurant.id))

    except Exception as e:
        logger.error("Error in restaurant WebSocket", error=str(e), exc_info=True)
        manager.disconnect(websocket)


@router.websocket("/restaurants/{restaurant_id}/tables/{table_number}")
async def websocket_table(
    websocket: WebSocket,
    restaurant_id: uuid.UUID,
    table_number: int,
    session: Session = Depends(get_session)
):
    """Diner channel for one table"""
    try:
        table = session.exec(
            select(RestaurantTable).where(
                RestaurantTable.restaurant_id == restaurant_id,
                RestaurantTable.table_number == table_number,
            )
        ).first()
        session.close()

        if table is None:
            logger.warning("Table not found for WebSocket", restaurant_id=str(restaurant_id), table_number=table_number)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await manager.connect_table(websocket, restaurant_id, table_number)

        await websocket.send_json({
            "type": "connection_confirmed",
            "restaurant_id": str(restaurant_id),
            "table_number": table_number,
            "timestamp": datetime.utcnow().isoformat()
        })

        await _listen(websocket, restaurant_id=str(restaurant_id), table_number=table_number)

    except Exception as e:
        logger.error("Error in table WebSocket", error=str(e), exc_info=True)
        manager.disconnect(websocket)


@router.get("/connections")
async def get_connection_stats():
    """Get WebSocket connection statistics"""
    return manager.get_connection_count()
