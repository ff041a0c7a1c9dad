"""
QR code generation for menu and table links
"""

from io import BytesIO
from typing import Optional
from urllib.parse import urlencode
import uuid

import qrcode
import structlog

from qrmenu.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def build_menu_url(restaurant_id: uuid.UUID, table_number: Optional[int] = None, base_url: Optional[str] = None) -> str:
    """Diner-facing menu link; the table link adds ?table=N"""
    base = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")
    url = f"{base}/menu-preview/{restaurant_id}"
    if table_number is not None:
        url = f"{url}?{urlencode({'table': table_number})}"
    return url


def qr_filename(table_number: Optional[int] = None) -> str:
    if table_number is None:
        return "menu-qr-code.png"
    return f"table-{table_number}-qr.png"


def generate_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """Render data as a black-on-white PNG"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    png = buffer.getvalue()

    logger.debug("Generated QR code", url=data, size=len(png))
    return png
