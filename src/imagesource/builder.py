"""
Container builder.

Collects (raster, properties) pairs in order and encodes them into a single
container. Only TIFF and GIF can hold more than one image.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from common.constants import ImageConstants, PropertyKeys
from common.enums import ImageFormat
from common.exceptions import CannotCreateDestinationError
from core.handle import ImageHandle
from core.image import codec
from core.raster import Raster
from imagesource.source import ImageSource

logger = logging.getLogger(__name__)

RasterLike = Union[Raster, ImageHandle]


def _as_raster(image: RasterLike) -> Raster:
    if isinstance(image, ImageHandle):
        return image.raster()
    return image


class ImageSourceBuilder:
    """
    Accumulates images for a new container.

    Example:
        >>> builder = ImageSourceBuilder()
        >>> builder.add(first, {"{GIF}": {"DelayTime": 0.5}})
        >>> builder.add(second)
        >>> source = builder.build(ImageFormat.GIF)
    """

    def __init__(
        self,
        images: Optional[Sequence[RasterLike]] = None,
        compression: Optional[float] = None,
    ):
        self._items: List[Tuple[Raster, Optional[Dict[str, Any]]]] = []
        for image in images or []:
            if compression is None:
                self.add(image)
            else:
                self.add_with_compression(image, compression)

    @property
    def count(self) -> int:
        return len(self._items)

    def add(self, image: RasterLike, properties: Optional[Dict[str, Any]] = None) -> None:
        """
        Append an image.

        Args:
            image: Raster or image handle
            properties: Optional property dictionary (orientation, DPI, GPS,
                GIF timing, LossyCompressionQuality); checked when encoding
        """
        properties = dict(properties) if properties else None
        self._items.append((_as_raster(image), properties))

    def add_with_compression(self, image: RasterLike, level: float) -> None:
        self.add(image, {PropertyKeys.LOSSY_COMPRESSION_QUALITY: level})

    def data(self, image_format: ImageFormat) -> bytes:
        """
        Encode all images, in the order added.

        Raises:
            InvalidCompressionError: If an added LossyCompressionQuality is outside [0, 1]
            CannotCreateDestinationError: If there are no images, or more than
                one image for a single-image format
        """
        image_format = codec.resolve_format(image_format)
        if self.count == 0:
            raise CannotCreateDestinationError(image_format, "no images added")
        if self.count > 1 and image_format not in ImageConstants.MULTI_FRAME_FORMATS:
            logger.error(
                f"tiff and gif are the only supported formats for multiple images, got {image_format.value}"
            )
            raise CannotCreateDestinationError(
                image_format, f"format does not support {self.count} images"
            )
        return codec.encode_rasters(self._items, image_format)

    def build(self, image_format: ImageFormat) -> ImageSource:
        return ImageSource.from_bytes(self.data(image_format))

    # ------------------------------------------------------------------
    # One-shot helpers
    # ------------------------------------------------------------------

    @classmethod
    def build_images(
        cls,
        images: Sequence[RasterLike],
        image_format: ImageFormat,
        compression: float = ImageConstants.DEFAULT_BUILD_COMPRESSION,
    ) -> ImageSource:
        return cls(images, compression).build(image_format)

    @classmethod
    def build_image(
        cls,
        image: RasterLike,
        image_format: ImageFormat,
        compression: float = ImageConstants.DEFAULT_BUILD_COMPRESSION,
        properties: Optional[Dict[str, Any]] = None,
    ) -> ImageSource:
        props = dict(properties or {})
        props[PropertyKeys.LOSSY_COMPRESSION_QUALITY] = compression
        builder = cls()
        builder.add(image, props)
        return builder.build(image_format)
