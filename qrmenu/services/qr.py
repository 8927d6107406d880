"""
QR Code Rendering

Turns a table's public menu URL into a PNG data URL that the admin UI can
print. Rendering is delegated to the qrcode library.
"""

import base64
import logging
from functools import lru_cache
from io import BytesIO
from typing import Optional

import qrcode

from qrmenu.core.config import get_settings

logger = logging.getLogger(__name__)


class QRCodeRenderer:
    """Renders URLs as black-on-white PNG QR codes."""

    def __init__(self, frontend_url: str, box_size: int = 10, border: int = 2):
        self.frontend_url = frontend_url.rstrip("/")
        self.box_size = box_size
        self.border = border

    def table_url(self, slug: str) -> str:
        """Public menu URL printed on a table."""
        return f"{self.frontend_url}/m/{slug}"

    def render_png(self, data: str, box_size: Optional[int] = None) -> bytes:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size or self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)

        image = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def render_data_url(self, data: str, box_size: Optional[int] = None) -> str:
        encoded = base64.b64encode(self.render_png(data, box_size)).decode("ascii")
        return f"data:image/png;base64,{encoded}"


@lru_cache()
def get_qr_renderer() -> QRCodeRenderer:
    settings = get_settings()
    logger.debug(f"QR renderer targeting {settings.frontend_url}")
    return QRCodeRenderer(
        frontend_url=settings.frontend_url,
        box_size=settings.qr_box_size,
        border=settings.qr_border,
    )
