"""
Multi-frame image container.

An ImageSource keeps the original encoded bytes plus one decoded Pillow
image. Frame pixels, frame properties and frame objects are created on
demand and cached in per-index lists owned by the source.
"""

import logging
from pathlib import Path as FilePath
from typing import Iterator, List, Optional, Sequence, Union

from PIL import Image

from common.enums import ImageFormat
from common.exceptions import InvalidImageError
from config import get_settings
from core.image import codec
from core.image.orientation import remove_orientation
from core.raster import Raster
from imagesource.frame import ImageFrame
from imagesource.gps import GPSCoordinates
from imagesource.metadata import FrameProperties

logger = logging.getLogger(__name__)


class ImageSource:
    """
    Decoded image container (single or multi-frame).

    Example:
        >>> source = ImageSource.from_file("animation.gif")
        >>> [frame.gif_delay for frame in source]
        [0.1, 0.1, 0.25]
    """

    def __init__(self, data: bytes):
        """
        Decode a container.

        Args:
            data: Encoded image bytes

        Raises:
            InvalidImageError: If the bytes are not a decodable image
        """
        image = codec.decode_image(data)
        self._data = bytes(data)
        self._image = image
        self._format = codec.format_from_pil(image.format)
        self._count = codec.frame_count(image)

        self._rasters: List[Optional[Raster]] = [None] * self._count
        self._normalized: List[Optional[Raster]] = [None] * self._count
        self._properties: List[Optional[FrameProperties]] = [None] * self._count
        self._frames: List[Optional[ImageFrame]] = [None] * self._count

        logger.debug(f"Opened {image.format} container with {self._count} frame(s)")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageSource":
        return cls(data)

    @classmethod
    def from_file(cls, path: Union[str, FilePath]) -> "ImageSource":
        """
        Raises:
            InvalidImageError: If the file cannot be read or decoded
        """
        try:
            data = FilePath(path).read_bytes()
        except OSError as e:
            logger.error(f"Failed to read image file {path}: {e}")
            raise InvalidImageError(str(e)) from e
        return cls(data)

    @classmethod
    def from_raster(
        cls, raster: Raster, image_format: ImageFormat = ImageFormat.TIFF
    ) -> "ImageSource":
        return cls.from_rasters([raster], image_format)

    @classmethod
    def from_rasters(
        cls, rasters: Sequence[Raster], image_format: ImageFormat = ImageFormat.TIFF
    ) -> "ImageSource":
        """
        Encode rasters into a new container and open it.

        Raises:
            CannotCreateDestinationError: If the format cannot hold the rasters
        """
        data = codec.encode_rasters([(r, None) for r in rasters], image_format)
        return cls(data)

    # ------------------------------------------------------------------
    # Frame caches
    # ------------------------------------------------------------------

    def _seek(self, index: int) -> Image.Image:
        try:
            self._image.seek(index)
        except (EOFError, OSError, ValueError) as e:
            logger.error(f"Failed to seek to frame {index}: {e}")
            raise InvalidImageError(str(e)) from e
        return self._image

    def _raster_at(self, index: int) -> Raster:
        raster = self._rasters[index]
        if raster is None:
            image = self._seek(index)
            try:
                raster = Raster.from_pil(image)
            except (OSError, ValueError, SyntaxError) as e:
                logger.error(f"Failed to decode frame {index}: {e}")
                raise InvalidImageError(str(e)) from e
            self._rasters[index] = raster
        return raster

    def _normalized_at(self, index: int) -> Raster:
        raster = self._normalized[index]
        if raster is None:
            raster = remove_orientation(self._raster_at(index), self._properties_at(index).orientation)
            self._normalized[index] = raster
        return raster

    def _properties_at(self, index: int) -> FrameProperties:
        properties = self._properties[index]
        if properties is None:
            settings = get_settings().image
            properties = FrameProperties.from_pil(
                self._seek(index),
                minimum_gif_delay=settings.gif_minimum_delay,
                default_dpi=settings.default_dpi,
            )
            self._properties[index] = properties
        return properties

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def format(self) -> Optional[ImageFormat]:
        """Container format, None when Pillow reports one this library does not write."""
        return self._format

    @property
    def count(self) -> int:
        return self._count

    @property
    def data(self) -> bytes:
        """The original encoded bytes."""
        return self._data

    def frame(self, index: int) -> Optional[ImageFrame]:
        """Frame at `index`, or None when out of range."""
        if not 0 <= index < self._count:
            return None
        frame = self._frames[index]
        if frame is None:
            frame = ImageFrame(self, index)
            self._frames[index] = frame
        return frame

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> ImageFrame:
        frame = self.frame(index)
        if frame is None:
            raise IndexError(f"frame index {index} out of range (count {self._count})")
        return frame

    def __iter__(self) -> Iterator[ImageFrame]:
        for index in range(self._count):
            yield self[index]

    @property
    def first(self) -> Optional[ImageFrame]:
        return self.frame(0)

    @property
    def frames(self) -> List[ImageFrame]:
        return list(self)

    def rasters(self) -> List[Raster]:
        return [frame.raster for frame in self]

    @property
    def location(self) -> Optional[GPSCoordinates]:
        """Location of the first frame, in index order, that has one."""
        for frame in self:
            location = frame.location
            if location is not None:
                return location
        return None

    @property
    def has_location(self) -> bool:
        return self.location is not None

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def encode(
        self, target_format: Optional[ImageFormat] = None, remove_gps: bool = False
    ) -> bytes:
        """
        Re-encode every frame from the original bytes.

        Args:
            target_format: Output format (None keeps the container format)
            remove_gps: Strip GPS data

        Raises:
            CannotCreateDestinationError: If the format cannot be written
        """
        return codec.reencode(self._data, target_format, remove_gps)

    def __repr__(self) -> str:
        fmt = self._format.value if self._format is not None else None
        return f"ImageSource(format={fmt}, count={self._count})"
