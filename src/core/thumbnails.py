"""
File thumbnails generated on a shared worker pool.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path as FilePath
from threading import Lock
from typing import Callable, Optional, Union

from PIL import Image, ImageOps

from common.base import Rect, Size
from config import get_settings
from core.context import create_image
from core.handle import ImageHandle
from core.raster import Raster

logger = logging.getLogger(__name__)

ThumbnailCallback = Callable[[Optional["FileThumbnail"]], None]


def _letterbox(raster: Raster, side: int) -> Raster:
    """Centre a raster, unscaled, on a transparent square canvas."""
    x = (side - raster.width) // 2
    y = (side - raster.height) // 2
    return create_image(
        Size.square(side),
        draw=lambda ctx, _: ctx.draw_image(
            raster, Rect(x=x, y=y, width=raster.width, height=raster.height)
        ),
    )


class FileThumbnail:
    """
    Thumbnail of an image file.

    Example:
        >>> def done(thumbnail):
        ...     if thumbnail is not None:
        ...         print(thumbnail.thumbnail.size)
        >>> FileThumbnail.generate("photo.jpg", Size.square(64), completion=done)
    """

    _executor: Optional[ThreadPoolExecutor] = None
    _executor_lock = Lock()

    def __init__(self, thumbnail: Raster):
        self.thumbnail = thumbnail

    def handle(self) -> ImageHandle:
        return ImageHandle.from_raster(self.thumbnail.copy())

    @classmethod
    def _pool(cls) -> ThreadPoolExecutor:
        with cls._executor_lock:
            if cls._executor is None:
                workers = get_settings().thumbnail.worker_threads
                cls._executor = ThreadPoolExecutor(
                    max_workers=workers, thread_name_prefix="thumbnail"
                )
            return cls._executor

    @classmethod
    def generate(
        cls,
        path: Union[str, FilePath],
        size: Optional[Size] = None,
        scale: float = 1.0,
        icon: bool = False,
        completion: Optional[ThumbnailCallback] = None,
    ) -> Future:
        """
        Generate a thumbnail in the background.

        Args:
            path: Image file
            size: Bounding size in points (configured default when None)
            scale: Pixels per point
            icon: Letterbox the thumbnail into a square canvas
            completion: Called exactly once with the thumbnail, or None when
                the file could not be thumbnailed

        Returns:
            Future resolving to the same value passed to `completion`
        """
        if size is None:
            size = Size.square(get_settings().thumbnail.default_size)

        def work() -> Optional[FileThumbnail]:
            result = cls._render(FilePath(path), size, scale, icon)
            if completion is not None:
                completion(result)
            return result

        return cls._pool().submit(work)

    @classmethod
    def _render(
        cls, path: FilePath, size: Size, scale: float, icon: bool
    ) -> Optional["FileThumbnail"]:
        try:
            pixel_size = size.scaled(scale).integral()
            if pixel_size[0] <= 0 or pixel_size[1] <= 0:
                logger.error(f"Invalid thumbnail size {size} at scale {scale}")
                return None

            with Image.open(path) as image:
                image = ImageOps.exif_transpose(image)
                image.thumbnail(pixel_size, Image.Resampling.LANCZOS)
                raster = Raster.from_pil(image)

            if icon:
                raster = _letterbox(raster, max(pixel_size))

            logger.debug(f"Generated {raster.width}x{raster.height} thumbnail for {path}")
            return cls(raster)
        except Exception as e:
            logger.error(f"Failed to generate thumbnail for {path}: {e}")
            return None
