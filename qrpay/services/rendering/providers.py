from __future__ import annotations

"""Concrete renderers and factory.

'qrcode' draws the code with the qrcode library and composes the caption
bands with Pillow: a 300x300 code between two 60px white bands carrying the
top and bottom labels.
"""
import io
import logging
from typing import Dict, Optional, Type

import qrcode
from PIL import Image, ImageDraw, ImageFont
from qrcode.exceptions import DataOverflowError

from .base import RenderedArtifact, Renderer

logger = logging.getLogger("qrpay.rendering")

QR_SIZE = 300
BAND_HEIGHT = 60
FONT_SIZE = 16


class QRCodeImageRenderer(Renderer):
    def __init__(self, qr_size: int = QR_SIZE, band_height: int = BAND_HEIGHT):
        self._qr_size = qr_size
        self._band_height = band_height
        self._font = ImageFont.load_default(size=FONT_SIZE)

    def _make_code(self, payload: str) -> Image.Image:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(payload.encode("utf-8"))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white").get_image()
        return img.convert("RGB").resize(
            (self._qr_size, self._qr_size), Image.Resampling.NEAREST
        )

    def _draw_centered(self, draw: ImageDraw.ImageDraw, text: str, top: int) -> None:
        left, upper, right, lower = draw.textbbox((0, 0), text, font=self._font)
        x = (self._qr_size - (right - left)) // 2
        y = top + (self._band_height - (lower - upper)) // 2
        draw.text((x, y), text, fill="black", font=self._font)

    def render(  # type: ignore[override]
        self, payload: str, top_label: str, bottom_label: str
    ) -> Optional[RenderedArtifact]:
        if not payload:
            return None
        try:
            code = self._make_code(payload)
        except (DataOverflowError, ValueError) as e:
            logger.warning("qr generation failed: %s", e)
            return None

        width = self._qr_size
        height = self._qr_size + self._band_height * 2
        canvas = Image.new("RGB", (width, height), "white")
        canvas.paste(code, (0, self._band_height))
        draw = ImageDraw.Draw(canvas)
        self._draw_centered(draw, top_label, 0)
        self._draw_centered(draw, bottom_label, self._band_height + self._qr_size)

        buf = io.BytesIO()
        canvas.save(buf, format="PNG")
        return RenderedArtifact(png=buf.getvalue(), width=width, height=height)


_RENDERER_REGISTRY: Dict[str, Type[Renderer]] = {
    "qrcode": QRCodeImageRenderer,
}


def make_renderer(kind: str) -> Renderer:
    cls = _RENDERER_REGISTRY.get(kind)
    if not cls:
        raise ValueError(f"Unknown renderer kind '{kind}'")
    return cls()
