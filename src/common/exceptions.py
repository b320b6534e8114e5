"""
Custom exceptions for the image tools library.
Provides one exception type per failure kind, all sharing a common base.
"""

from typing import Any, Dict, Optional, Tuple


# Standard Messages
class ErrorMessages:
    """Standard error messages."""

    # Image errors
    INVALID_IMAGE = "Invalid image: {reason}"
    CANNOT_CREATE_IMAGE = "Cannot create image: {reason}"
    UNABLE_TO_CREATE_FROM_CONTEXT = "Unable to create image from drawing context: {reason}"
    UNABLE_TO_COPY = "Unable to copy image: {reason}"
    UNABLE_TO_MASK = "Unable to mask image: {reason}"

    # Context errors
    INVALID_CONTEXT = "Invalid drawing context: {reason}"
    INVALID_COLORSPACE = "Invalid colorspace: {colorspace}"

    # Parameter errors
    INVALID_COMPRESSION = "Compression must be in [0, 1], got {value}"
    INVALID_PARAMETER = "Invalid parameter {param}: {value} (expected {low} to {high})"
    INVALID_HEX_COLOR = "Invalid hex color string: {value!r}"

    # Encoding errors
    CANNOT_CREATE_DESTINATION = "Cannot create {format} destination: {reason}"

    # Pattern errors
    PATTERN_RELEASED = "Pattern {token} has been released"


class ImageToolsException(Exception):
    """Base exception for the image tools library."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidImageError(ImageToolsException):
    """Raised when bytes do not decode or a handle has been released."""

    def __init__(self, reason: str = "image handle is no longer valid"):
        super().__init__(
            message=ErrorMessages.INVALID_IMAGE.format(reason=reason), details={"reason": reason}
        )


class CannotCreateImageError(ImageToolsException):
    """Raised when an operation cannot produce an output image."""

    def __init__(self, reason: str):
        super().__init__(
            message=ErrorMessages.CANNOT_CREATE_IMAGE.format(reason=reason),
            details={"reason": reason},
        )


class UnableToCreateImageFromContextError(CannotCreateImageError):
    """Raised when a drawing context cannot be snapshotted."""

    def __init__(self, reason: str):
        ImageToolsException.__init__(
            self,
            message=ErrorMessages.UNABLE_TO_CREATE_FROM_CONTEXT.format(reason=reason),
            details={"reason": reason},
        )


class InvalidContextError(ImageToolsException):
    """Raised when a drawing context cannot be allocated."""

    def __init__(self, reason: str):
        super().__init__(
            message=ErrorMessages.INVALID_CONTEXT.format(reason=reason), details={"reason": reason}
        )


class UnableToCopyError(ImageToolsException):
    """Raised when a raster cannot be duplicated."""

    def __init__(self, reason: str):
        super().__init__(
            message=ErrorMessages.UNABLE_TO_COPY.format(reason=reason), details={"reason": reason}
        )


class InvalidCompressionError(ImageToolsException):
    """Raised when an encode compression value is outside [0, 1]."""

    def __init__(self, value: Any):
        super().__init__(
            message=ErrorMessages.INVALID_COMPRESSION.format(value=value), details={"value": value}
        )


class InvalidParametersError(ImageToolsException):
    """Raised when an operation parameter is outside its accepted range."""

    def __init__(self, param: str, value: Any, valid_range: Tuple[float, float]):
        low, high = valid_range
        super().__init__(
            message=ErrorMessages.INVALID_PARAMETER.format(
                param=param, value=value, low=low, high=high
            ),
            details={"param": param, "value": value, "range": [low, high]},
        )


class CannotCreateDestinationError(ImageToolsException):
    """Raised when an encoder cannot be created for the requested output."""

    def __init__(self, format: Any, reason: str):
        format_name = getattr(format, "value", format)
        super().__init__(
            message=ErrorMessages.CANNOT_CREATE_DESTINATION.format(
                format=format_name, reason=reason
            ),
            details={"format": format_name, "reason": reason},
        )


class UnableToMaskError(ImageToolsException):
    """Raised when a mask image cannot be turned into coverage."""

    def __init__(self, reason: str):
        super().__init__(
            message=ErrorMessages.UNABLE_TO_MASK.format(reason=reason), details={"reason": reason}
        )


class InvalidColorspaceError(ImageToolsException):
    """Raised when a raster has no usable colorspace for an operation."""

    def __init__(self, colorspace: Any):
        name = getattr(colorspace, "value", colorspace)
        super().__init__(
            message=ErrorMessages.INVALID_COLORSPACE.format(colorspace=name),
            details={"colorspace": name},
        )


class InvalidHexColorError(ImageToolsException, ValueError):
    """Raised when a string is not a valid hex color."""

    def __init__(self, value: str):
        super().__init__(
            message=ErrorMessages.INVALID_HEX_COLOR.format(value=value), details={"value": value}
        )


class PatternReleasedError(ImageToolsException):
    """Raised when drawing with a pattern whose callback has been released."""

    def __init__(self, token: int):
        super().__init__(
            message=ErrorMessages.PATTERN_RELEASED.format(token=token), details={"token": token}
        )
