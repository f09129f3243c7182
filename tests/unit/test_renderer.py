import pytest

from qrpay.services.rendering import QRCodeImageRenderer, make_renderer
from qrpay.services.rendering.providers import BAND_HEIGHT, QR_SIZE

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture(scope="module")
def qr_renderer() -> QRCodeImageRenderer:
    return QRCodeImageRenderer()


def test_renders_code_with_caption_bands(qr_renderer):
    artifact = qr_renderer.render("ST00012|Name=Test|Sum=100", "1 rmb / 11 rub", "Rate: 11.00")
    assert artifact is not None
    assert artifact.png.startswith(PNG_MAGIC)
    assert (artifact.width, artifact.height) == (QR_SIZE, QR_SIZE + 2 * BAND_HEIGHT)
    assert artifact.size_bytes == 300 * 420 * 4


def test_empty_payload_renders_nothing(qr_renderer):
    assert qr_renderer.render("", "top", "bottom") is None


def test_oversized_payload_renders_nothing(qr_renderer):
    assert qr_renderer.render("x" * 5000, "top", "bottom") is None


def test_factory():
    assert isinstance(make_renderer("qrcode"), QRCodeImageRenderer)
    with pytest.raises(ValueError):
        make_renderer("zxing")
