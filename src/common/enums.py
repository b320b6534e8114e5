"""
Centralized enums for the image tools library.

This module contains all enumeration types used throughout the system,
providing a single source of truth for enum definitions.
"""

from enum import Enum, IntEnum


# Encoding / container enums
class ImageFormat(str, Enum):
    """Supported container formats for encoding and decoding."""

    PNG = "png"
    JPEG = "jpeg"
    TIFF = "tiff"
    HEIC = "heic"
    GIF = "gif"
    BMP = "bmp"


# Transformation enums
class ScalingType(str, Enum):
    """The type of scaling to apply to an image."""

    AXES_INDEPENDENT = "axes_independent"  # Stretch X and Y independently
    ASPECT_FILL = "aspect_fill"  # Keep aspect, cover the whole target
    ASPECT_FIT = "aspect_fit"  # Keep aspect, fit inside the target


class FlipType(str, Enum):
    """The type of flipping to apply to an image."""

    HORIZONTALLY = "horizontally"  # Across the horizontal axis (rows reversed)
    VERTICALLY = "vertically"  # Across the vertical axis (columns reversed)
    BOTH = "both"


class ColorSpace(str, Enum):
    """Pixel layouts a raster or drawing context can use."""

    RGBA = "rgba"
    RGB = "rgb"
    GRAY = "gray"
    GRAY_ALPHA = "gray_alpha"
    CMYK = "cmyk"


class BlendMode(str, Enum):
    """Compositing modes supported by the drawing context."""

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    COLOR = "color"
    LUMINOSITY = "luminosity"
    COPY = "copy"
    DESTINATION_IN = "destination_in"
    DESTINATION_OUT = "destination_out"


class PatternTiling(str, Enum):
    """Tiling methods for pattern fills."""

    CONSTANT_SPACING = "constant_spacing"
    NO_DISTORTION = "no_distortion"
    CONSTANT_SPACING_MINIMAL_DISTORTION = "constant_spacing_minimal_distortion"


class Orientation(IntEnum):
    """EXIF orientation values (TIFF tag 0x0112)."""

    UP = 1
    UP_MIRRORED = 2
    DOWN = 3
    DOWN_MIRRORED = 4
    LEFT_MIRRORED = 5
    RIGHT = 6
    RIGHT_MIRRORED = 7
    LEFT = 8
