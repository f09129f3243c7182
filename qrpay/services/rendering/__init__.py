from .base import RenderedArtifact, Renderer
from .providers import QRCodeImageRenderer, make_renderer

__all__ = ["RenderedArtifact", "Renderer", "QRCodeImageRenderer", "make_renderer"]
