"""Object processors -- turn source objects into intermediate artifacts."""

from __future__ import annotations

from .base import ObjectProcessor
from .generator import IMAGES_DIR, MANIFEST_NAME, NODES_DIR, NodeDocsGenerator
from .surface import RenderSurface

__all__ = [
    "IMAGES_DIR",
    "MANIFEST_NAME",
    "NODES_DIR",
    "NodeDocsGenerator",
    "ObjectProcessor",
    "RenderSurface",
]
