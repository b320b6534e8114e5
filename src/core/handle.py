"""
Image handle.

An ImageHandle owns exactly one Raster and tracks whether it is still valid.
Every fluent operation returns a new handle; the receiver is left untouched.
release() hands the raster over to the caller and invalidates the handle.
"""

import logging
from pathlib import Path as FilePath
from typing import Any, Callable, Dict, Optional, Union

from common.base import Color, Rect, Size
from common.enums import ColorSpace, FlipType, ImageFormat, Orientation, ScalingType
from common.exceptions import InvalidImageError
from config import get_settings
from core.context import DrawFunc, create_image
from core.image import codec, transforms
from core.image.colors import resolve_color
from core.image.orientation import remove_orientation
from core.paths import Path
from core.patterns import PatternFill
from core.raster import Raster

logger = logging.getLogger(__name__)

ColorValue = Union[Color, str]
FillValue = Union[Color, str, PatternFill]


def _fill_value(value: FillValue) -> Union[Color, PatternFill]:
    if isinstance(value, PatternFill):
        return value
    return resolve_color(value)


class ImageHandle:
    """
    Valid-or-released wrapper around a Raster.

    Example:
        >>> handle = ImageHandle.from_file("photo.jpg")
        >>> thumb = handle.scale(ScalingType.ASPECT_FIT, Size.square(128))
        >>> png = thumb.png_data()
    """

    def __init__(self, raster: Raster):
        if not isinstance(raster, Raster):
            raise InvalidImageError(f"expected a Raster, got {type(raster).__name__}")
        self._raster: Optional[Raster] = raster

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_raster(cls, raster: Raster) -> "ImageHandle":
        return cls(raster)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageHandle":
        """
        Decode the first frame of encoded image data.

        Raises:
            InvalidImageError: If the data cannot be decoded
        """
        image = codec.decode_image(data)
        try:
            raster = Raster.from_pil(image)
        except (OSError, ValueError) as e:
            raise InvalidImageError(str(e)) from e
        logger.debug(f"Decoded {image.format} {raster.width}x{raster.height} from {len(data)} bytes")
        return cls(raster)

    @classmethod
    def from_file(cls, path: Union[str, FilePath]) -> "ImageHandle":
        """
        Decode the first frame of an image file.

        Raises:
            InvalidImageError: If the file cannot be read or decoded
        """
        try:
            data = FilePath(path).read_bytes()
        except OSError as e:
            logger.error(f"Failed to read image file {path}: {e}")
            raise InvalidImageError(str(e)) from e
        return cls.from_bytes(data)

    @classmethod
    def copy_of(cls, handle: "ImageHandle") -> "ImageHandle":
        """
        Deep copy of another handle.

        Raises:
            InvalidImageError: If `handle` has been released
        """
        return cls(handle._checked().copy())

    @classmethod
    def create(
        cls,
        size: Size,
        background_color: Optional[FillValue] = None,
        draw: Optional[DrawFunc] = None,
    ) -> "ImageHandle":
        """New RGBA image, optionally filled and drawn into."""
        background = _fill_value(background_color) if background_color is not None else None
        return cls(create_image(size, background_color=background, draw=draw))

    @classmethod
    def create_square(
        cls,
        dimension: float,
        background_color: Optional[FillValue] = None,
        draw: Optional[DrawFunc] = None,
    ) -> "ImageHandle":
        return cls.create(Size.square(dimension), background_color, draw)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _checked(self) -> Raster:
        if self._raster is None:
            raise InvalidImageError()
        return self._raster

    @property
    def valid(self) -> bool:
        return self._raster is not None

    def size(self) -> Size:
        """
        Raises:
            InvalidImageError: If the handle has been released
        """
        return self._checked().size

    @property
    def colorspace(self) -> ColorSpace:
        return self._checked().colorspace

    def raster(self) -> Raster:
        """Deep copy of the owned raster."""
        return self._checked().copy()

    def release(self) -> Raster:
        """
        Hand over the owned raster and invalidate this handle.

        Raises:
            InvalidImageError: If the handle was already released
        """
        raster = self._checked()
        self._raster = None
        return raster

    def _apply(self, operation: Callable[..., Raster], *args, **kwargs) -> "ImageHandle":
        return ImageHandle(operation(self._checked(), *args, **kwargs))

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def crop(self, rect: Rect) -> "ImageHandle":
        return self._apply(transforms.crop_image, rect)

    def rotate_by(self, radians: float) -> "ImageHandle":
        return self._apply(transforms.rotate_image_by, radians)

    def rotate_to(self, orientation: Orientation) -> "ImageHandle":
        return self._apply(transforms.rotate_image_to, orientation)

    def remove_orientation(self, orientation: Orientation) -> "ImageHandle":
        return self._apply(remove_orientation, orientation)

    def scale(self, scaling_type: ScalingType, size: Size) -> "ImageHandle":
        return self._apply(transforms.scale_image, scaling_type, size)

    def scale_by(self, factor: float) -> "ImageHandle":
        return self._apply(transforms.scale_image_by, factor)

    def flip(self, flip_type: FlipType = FlipType.HORIZONTALLY) -> "ImageHandle":
        return self._apply(transforms.flip_image, flip_type)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw(self, draw: DrawFunc) -> "ImageHandle":
        return self._apply(transforms.draw_on_image, draw)

    def border(self, color: ColorValue, line_width: float = 1.0) -> "ImageHandle":
        return self._apply(transforms.draw_border, resolve_color(color), line_width)

    def fill(self, path: Path, color: FillValue) -> "ImageHandle":
        return self._apply(transforms.fill_path, path, _fill_value(color))

    def stroke(self, path: Path, color: ColorValue, line_width: float = 1.0) -> "ImageHandle":
        return self._apply(transforms.stroke_path, path, resolve_color(color), line_width)

    def fill_stroke(
        self, path: Path, fill: FillValue, stroke: ColorValue, line_width: float = 1.0
    ) -> "ImageHandle":
        return self._apply(
            transforms.fill_stroke_path,
            path,
            _fill_value(fill),
            resolve_color(stroke),
            line_width,
        )

    # ------------------------------------------------------------------
    # Clipping and compositing
    # ------------------------------------------------------------------

    def clip(self, path: Path) -> "ImageHandle":
        return self._apply(transforms.clip_to_path, path)

    def apply_clip(
        self, clip_path: Path, draw: Callable[["ImageHandle"], "ImageHandle"]
    ) -> "ImageHandle":
        """
        Composite content produced by `draw`, clipped to `clip_path`.

        Args:
            clip_path: Region the content is restricted to
            draw: Receives a transparent handle the size of this image and
                returns the content handle
        """

        def render(blank: Raster) -> Raster:
            return draw(ImageHandle(blank))._checked()

        return self._apply(transforms.apply_clip, clip_path, render)

    def composite(
        self,
        overlay: Union["ImageHandle", Raster],
        rect: Optional[Rect] = None,
        clip_path: Optional[Path] = None,
    ) -> "ImageHandle":
        return self._apply(transforms.composite_image, _raster_of(overlay), rect, clip_path)

    def mask(self, mask: Union["ImageHandle", Raster]) -> "ImageHandle":
        return self._apply(transforms.mask_image, _raster_of(mask))

    # ------------------------------------------------------------------
    # Color
    # ------------------------------------------------------------------

    def tint(self, color: ColorValue, keeping_alpha: bool = True) -> "ImageHandle":
        return self._apply(transforms.tint_image, resolve_color(color), keeping_alpha)

    def grayscale(self, keeping_alpha: bool = True) -> "ImageHandle":
        return self._apply(transforms.grayscale_image, keeping_alpha)

    def alpha(self, value: float) -> "ImageHandle":
        return self._apply(transforms.apply_alpha, value)

    def adjust_colors(
        self, saturation: float = 1.0, brightness: float = 0.0, contrast: float = 1.0
    ) -> "ImageHandle":
        return self._apply(transforms.adjust_colors, saturation, brightness, contrast)

    def convert_to_cmyk(self) -> "ImageHandle":
        return self._apply(transforms.convert_to_cmyk)

    def convert_to_rgba(self) -> "ImageHandle":
        return self._apply(transforms.convert_to_rgba)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def data(
        self,
        image_format: ImageFormat,
        compression: Optional[float] = None,
        exclude_gps: bool = False,
        properties: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """
        Encode the image.

        Args:
            image_format: Target format
            compression: 0 (smallest) to 1 (best); None uses the configured
                default, or the format default when none is configured
            exclude_gps: Do not write GPS data
            properties: Optional per-image properties (orientation, DPI, GPS)

        Raises:
            InvalidImageError: If the handle has been released
            InvalidCompressionError: If compression is outside [0, 1]
            CannotCreateDestinationError: If the format cannot be written
        """
        if compression is None:
            compression = get_settings().image.default_compression
        return codec.encode_raster(
            self._checked(), image_format, compression, exclude_gps, properties
        )

    def png_data(self, compression: Optional[float] = None, exclude_gps: bool = False) -> bytes:
        return self.data(ImageFormat.PNG, compression, exclude_gps)

    def jpeg_data(self, compression: Optional[float] = None, exclude_gps: bool = False) -> bytes:
        return self.data(ImageFormat.JPEG, compression, exclude_gps)

    def tiff_data(self, compression: Optional[float] = None, exclude_gps: bool = False) -> bytes:
        """TIFF is written losslessly; compression is validated but does not change the output."""
        return self.data(ImageFormat.TIFF, compression, exclude_gps)

    def __repr__(self) -> str:
        if self._raster is None:
            return "ImageHandle(released)"
        return f"ImageHandle({self._raster!r})"


def _raster_of(value: Union[ImageHandle, Raster]) -> Raster:
    if isinstance(value, ImageHandle):
        return value._checked()
    return value
