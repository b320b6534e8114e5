"""
Types package - fundamental types without external dependencies.

This package contains basic types that are used throughout the system:
- Enums (ImageFormat, ScalingType, Orientation, etc.)
- Constants (ImageConstants, GPSConstants, etc.)
- Base models (Point, Size, Rect, Color)
- Exceptions (ImageToolsException and its subclasses)

IMPORTANT: This package must NOT import from any other project packages
(core, imagesource, config) to avoid circular dependencies.
"""

# Export base models
from common.base import Color, Point, Rect, Size

# Export all constants
from common.constants import (
    Colors,
    ExifTagIds,
    GPSConstants,
    ImageConstants,
    ParameterRanges,
    PropertyKeys,
    SystemConstants,
)

# Export all enums
from common.enums import (
    BlendMode,
    ColorSpace,
    FlipType,
    ImageFormat,
    Orientation,
    PatternTiling,
    ScalingType,
)

# Export exceptions
from common.exceptions import (
    CannotCreateDestinationError,
    CannotCreateImageError,
    ErrorMessages,
    ImageToolsException,
    InvalidColorspaceError,
    InvalidCompressionError,
    InvalidContextError,
    InvalidHexColorError,
    InvalidImageError,
    InvalidParametersError,
    PatternReleasedError,
    UnableToCopyError,
    UnableToCreateImageFromContextError,
    UnableToMaskError,
)

__all__ = [
    # Enums
    "BlendMode",
    "ColorSpace",
    "FlipType",
    "ImageFormat",
    "Orientation",
    "PatternTiling",
    "ScalingType",
    # Constants
    "Colors",
    "ExifTagIds",
    "GPSConstants",
    "ImageConstants",
    "ParameterRanges",
    "PropertyKeys",
    "SystemConstants",
    # Base models
    "Color",
    "Point",
    "Rect",
    "Size",
    # Exceptions
    "CannotCreateDestinationError",
    "CannotCreateImageError",
    "ErrorMessages",
    "ImageToolsException",
    "InvalidColorspaceError",
    "InvalidCompressionError",
    "InvalidContextError",
    "InvalidHexColorError",
    "InvalidImageError",
    "InvalidParametersError",
    "PatternReleasedError",
    "UnableToCopyError",
    "UnableToCreateImageFromContextError",
    "UnableToMaskError",
]
