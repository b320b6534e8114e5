"""
Constants and configuration values for the image tools library.
Centralizes all magic numbers and configuration constants.
"""

from common.enums import ImageFormat


# Image Constants
class ImageConstants:
    """Constants related to rasters, contexts and encoding."""

    # Resolution
    DEFAULT_DPI = 72.0

    # Raster storage
    BITS_PER_COMPONENT = 8
    MAX_CONTEXT_DIMENSION = 32000  # OpenCV remap limit is SHRT_MAX
    MAX_CONTEXT_PIXELS = 256 * 1024 * 1024

    # Encoding
    SUPPORTED_FORMATS = [f for f in ImageFormat]
    MULTI_FRAME_FORMATS = [ImageFormat.TIFF, ImageFormat.GIF]
    MIN_COMPRESSION = 0.0
    MAX_COMPRESSION = 1.0
    DEFAULT_BUILD_COMPRESSION = 1.0
    TIFF_COMPRESSION = "tiff_lzw"
    # libtiff cannot write nested IFDs (GPS); Pillow's own writer can
    TIFF_NESTED_IFD_COMPRESSION = "raw"

    # Thumbnails
    DEFAULT_THUMBNAIL_MAX_SIZE = 300
    THUMBNAIL_WORKER_THREADS = 2

    # GIF timing (seconds)
    GIF_MINIMUM_DELAY = 0.1
    GIF_DEFAULT_DELAY = 0.1


# Parameter ranges for transformation operations
class ParameterRanges:
    """Inclusive ranges accepted by parameterised operations."""

    ALPHA = (0.0, 1.0)
    SATURATION = (0.0, 2.0)
    BRIGHTNESS = (-1.0, 1.0)
    CONTRAST = (0.25, 4.0)


# GPS Constants
class GPSConstants:
    """Constants for GPS metadata handling."""

    # Some cameras write a status of "V" (void) when no fix was available
    STATUS_VOID = "V"
    STATUS_ACTIVE = "A"

    NORTH = "N"
    SOUTH = "S"
    EAST = "E"
    WEST = "W"

    DMS_FRACTION_DIGITS = 3


# Property dictionary keys
class PropertyKeys:
    """Keys used in per-frame property dictionaries."""

    PIXEL_WIDTH = "PixelWidth"
    PIXEL_HEIGHT = "PixelHeight"
    ORIENTATION = "Orientation"
    DPI_WIDTH = "DPIWidth"
    DPI_HEIGHT = "DPIHeight"
    EXIF = "{Exif}"
    TIFF = "{TIFF}"
    GPS = "{GPS}"
    GIF = "{GIF}"
    HEIC = "{HEICS}"

    # GPS sub-dictionary
    GPS_LATITUDE = "Latitude"
    GPS_LATITUDE_REF = "LatitudeRef"
    GPS_LONGITUDE = "Longitude"
    GPS_LONGITUDE_REF = "LongitudeRef"
    GPS_ALTITUDE = "Altitude"
    GPS_ALTITUDE_REF = "AltitudeRef"
    GPS_STATUS = "Status"

    # GIF sub-dictionary
    GIF_DELAY_TIME = "DelayTime"
    GIF_UNCLAMPED_DELAY_TIME = "UnclampedDelayTime"
    GIF_LOOP_COUNT = "LoopCount"

    # Destination options
    LOSSY_COMPRESSION_QUALITY = "LossyCompressionQuality"


# EXIF tag numbers used when reading and writing metadata
class ExifTagIds:
    """Numeric EXIF/TIFF tag identifiers."""

    ORIENTATION = 0x0112
    X_RESOLUTION = 0x011A
    Y_RESOLUTION = 0x011B
    EXIF_IFD = 0x8769
    GPS_IFD = 0x8825

    GPS_LATITUDE_REF = 1
    GPS_LATITUDE = 2
    GPS_LONGITUDE_REF = 3
    GPS_LONGITUDE = 4
    GPS_ALTITUDE_REF = 5
    GPS_ALTITUDE = 6
    GPS_STATUS = 9


# System Constants
class SystemConstants:
    """Constants for system operations."""

    # Logging
    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Color Constants (RGBA, 0-1 components)
class Colors:
    """Standard colors for drawing operations (RGBA, 0-1)."""

    CLEAR = (0.0, 0.0, 0.0, 0.0)
    BLACK = (0.0, 0.0, 0.0, 1.0)
    WHITE = (1.0, 1.0, 1.0, 1.0)
    GRAY = (0.5, 0.5, 0.5, 1.0)
