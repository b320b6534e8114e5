"""
Image containers: decoding, per-frame metadata and building
"""

from .gps import GPSCoordinate, GPSCoordinates
from .metadata import FrameProperties, GIFProperties, GPSProperties
from .frame import ImageFrame
from .source import ImageSource
from .builder import ImageSourceBuilder

__all__ = [
    "GPSCoordinate",
    "GPSCoordinates",
    "FrameProperties",
    "GPSProperties",
    "GIFProperties",
    "ImageFrame",
    "ImageSource",
    "ImageSourceBuilder",
]
