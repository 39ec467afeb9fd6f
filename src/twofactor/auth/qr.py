"""QR code rendering for provisioning URIs."""

from __future__ import annotations

import base64
import io
import logging

import qrcode
import qrcode.constants
import qrcode.exceptions
from qrcode.image.pil import PilImage

from twofactor.config import Settings, settings
from twofactor.errors import RenderError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/png;base64,"


class QrRenderer:
    """Encodes a URI as a PNG QR code at error-correction level Q."""

    def __init__(self, box_size: int = 20, border: int = 4) -> None:
        self.box_size = box_size
        self.border = border

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> QrRenderer:
        s = s or settings
        return cls(box_size=s.qr_box_size, border=s.qr_border)

    def render_png(self, uri: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_Q,
            box_size=self.box_size,
            border=self.border,
            image_factory=PilImage,
        )
        try:
            qr.add_data(uri)
            qr.make(fit=True)
            img = qr.make_image(fill_color="black", back_color="white")
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
        except (qrcode.exceptions.DataOverflowError, ValueError, OSError) as exc:
            logger.warning("QR render failed (%d chars): %s", len(uri), type(exc).__name__)
            raise RenderError() from exc
        return buffer.getvalue()

    def render(self, uri: str) -> str:
        """Render ``uri`` and return it as an inline ``data:image/png;base64,`` URI."""
        png = self.render_png(uri)
        return DATA_URI_PREFIX + base64.b64encode(png).decode("ascii")
