"""Scannable images for check-in deep links."""

import base64
import typing as t
from io import BytesIO

import qrcode
from django.conf import settings
from django.utils.module_loading import import_string


class ImageRenderer(t.Protocol):
    def render(self, data: str) -> str:
        """Turn ``data`` into an image, returned as a data URI."""
        ...


class QRCodeRenderer:
    """Renders a PNG QR code as a base64 data URI."""

    def __init__(self, box_size: int = 10, border: int = 4) -> None:
        self.box_size = box_size
        self.border = border

    def render(self, data: str) -> str:
        """Generate a QR code from the given data."""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffered = BytesIO()
        img.save(buffered, "PNG")
        return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("utf-8")


def get_image_renderer() -> ImageRenderer:
    """Instantiate the renderer configured in ``CHECKIN_IMAGE_RENDERER``."""
    renderer_class = import_string(settings.CHECKIN_IMAGE_RENDERER)
    return t.cast(ImageRenderer, renderer_class())
