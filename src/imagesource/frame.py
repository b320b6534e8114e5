"""
A single frame of an image container.

Frames carry only their index and a reference to the owning ImageSource;
decoded pixels and properties live in the source's per-index caches.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from PIL import Image

from common.base import Size
from common.constants import ImageConstants
from common.enums import ImageFormat, Orientation
from config import get_settings
from core.handle import ImageHandle
from core.image import codec
from core.raster import Raster
from imagesource.gps import GPSCoordinates
from imagesource.metadata import FrameProperties, GPSProperties

if TYPE_CHECKING:
    from imagesource.source import ImageSource

logger = logging.getLogger(__name__)


class ImageFrame:
    """Frame `index` of an ImageSource."""

    def __init__(self, source: "ImageSource", index: int):
        self._source = source
        self.index = index

    @property
    def source(self) -> "ImageSource":
        return self._source

    # ------------------------------------------------------------------
    # Pixels
    # ------------------------------------------------------------------

    @property
    def raster(self) -> Raster:
        """Stored pixels of the frame (decoded once, then cached)."""
        return self._source._raster_at(self.index)

    def handle(self) -> ImageHandle:
        return ImageHandle.from_raster(self.raster.copy())

    @property
    def normalized_raster(self) -> Raster:
        """Upright pixels with the EXIF orientation removed (cached)."""
        return self._source._normalized_at(self.index)

    def remove_orientation(self) -> Raster:
        """Upright copy of the frame pixels."""
        return self.normalized_raster.copy()

    @property
    def pixel_size(self) -> Size:
        return self.raster.size

    def thumbnail(self, max_size: Optional[int] = None) -> Raster:
        """
        Shrink the stored pixels so neither side exceeds `max_size`.

        Args:
            max_size: Longest side in pixels (configured default when None)
        """
        if max_size is None:
            max_size = get_settings().image.thumbnail_max_size
        image = self.raster.to_pil()
        image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
        return Raster.from_pil(image)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def properties(self) -> FrameProperties:
        return self._source._properties_at(self.index)

    @property
    def exif_properties(self) -> Dict[str, Any]:
        return self.properties.exif

    @property
    def tiff_properties(self) -> Dict[str, Any]:
        return self.properties.tiff

    @property
    def heic_properties(self) -> Dict[str, Any]:
        return self.properties.heic

    @property
    def gif_properties(self) -> Optional[Dict[str, Any]]:
        gif = self.properties.gif
        return gif.to_dict() if gif is not None else None

    @property
    def orientation(self) -> Orientation:
        return self.properties.orientation

    @property
    def dpi(self) -> Size:
        props = self.properties
        return Size(width=props.dpi_width, height=props.dpi_height)

    @property
    def dpi_fraction(self) -> Size:
        dpi = self.dpi
        return Size(
            width=dpi.width / ImageConstants.DEFAULT_DPI,
            height=dpi.height / ImageConstants.DEFAULT_DPI,
        )

    @property
    def gps_properties(self) -> Optional[GPSProperties]:
        """GPS data, or None when absent or the fix is void."""
        gps = self.properties.gps
        if gps is None or gps.is_void:
            return None
        return gps

    @property
    def location(self) -> Optional[GPSCoordinates]:
        gps = self.gps_properties
        return gps.coordinates() if gps is not None else None

    @property
    def has_location(self) -> bool:
        return self.location is not None

    @property
    def gif_delay(self) -> float:
        """Delay in seconds, clamped to the configured minimum (0 for non-GIF frames)."""
        gif = self.properties.gif
        return gif.delay_time if gif is not None else 0.0

    @property
    def gif_delay_unclamped(self) -> float:
        gif = self.properties.gif
        return gif.unclamped_delay_time if gif is not None else 0.0

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def data(
        self,
        image_format: ImageFormat,
        remove_gps: bool = False,
        compression: Optional[float] = None,
    ) -> bytes:
        """
        Encode this frame on its own, carrying orientation, DPI and GPS.

        Raises:
            InvalidCompressionError: If compression is outside [0, 1]
            CannotCreateDestinationError: If the format cannot be written
        """
        return codec.encode_raster(
            self.raster,
            image_format,
            compression,
            exclude_gps=remove_gps,
            properties=self.properties.to_dict(),
        )

    def __repr__(self) -> str:
        return f"ImageFrame(index={self.index})"
