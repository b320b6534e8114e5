"""
Core modules for image tools
"""

from .context import DrawingContext, create_image
from .paths import Path
from .patterns import ColorPattern, MaskPattern, PatternFill, PatternRegistry
from .raster import Raster
from .handle import ImageHandle
from .thumbnails import FileThumbnail

__all__ = [
    "Raster",
    "Path",
    "DrawingContext",
    "create_image",
    "PatternRegistry",
    "PatternFill",
    "ColorPattern",
    "MaskPattern",
    "ImageHandle",
    "FileThumbnail",
]
