from __future__ import annotations

"""Renderer abstraction.

The session only depends on this interface, so the raster engine can be
swapped (or faked in tests) without touching cache or encoder code.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RenderedArtifact:
    png: bytes
    width: int
    height: int

    @property
    def size_bytes(self) -> int:
        """Uncompressed RGBA estimate, matching what a decoded image occupies."""
        return self.width * self.height * 4


class Renderer(ABC):
    @abstractmethod
    def render(
        self, payload: str, top_label: str, bottom_label: str
    ) -> Optional[RenderedArtifact]:
        """Return the labelled QR image, or None when rendering failed."""
        raise NotImplementedError
