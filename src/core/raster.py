"""
Raster - immutable decoded bitmap.

A Raster owns a read-only numpy uint8 array with straight (non-premultiplied)
alpha and a ColorSpace describing its channel layout:

    RGBA        (h, w, 4)
    RGB         (h, w, 3)
    GRAY        (h, w)
    GRAY_ALPHA  (h, w, 2)
    CMYK        (h, w, 4)

Conversions to and from PIL images and to the premultiplied float layout
used by the drawing context live here too.
"""

import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from common.base import Rect, Size
from common.constants import ImageConstants
from common.enums import ColorSpace
from common.exceptions import CannotCreateImageError, InvalidColorspaceError, UnableToCopyError

logger = logging.getLogger(__name__)

# Channel counts per colorspace (None = 2D array)
CHANNELS = {
    ColorSpace.RGBA: 4,
    ColorSpace.RGB: 3,
    ColorSpace.GRAY: None,
    ColorSpace.GRAY_ALPHA: 2,
    ColorSpace.CMYK: 4,
}

# PIL mode for each colorspace
PIL_MODES = {
    ColorSpace.RGBA: "RGBA",
    ColorSpace.RGB: "RGB",
    ColorSpace.GRAY: "L",
    ColorSpace.GRAY_ALPHA: "LA",
    ColorSpace.CMYK: "CMYK",
}

_COLORSPACE_FOR_MODE = {mode: cs for cs, mode in PIL_MODES.items()}

_HIGH_DEPTH_GRAY_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N", "F")


def _gray_to_8bit(image: Image.Image) -> np.ndarray:
    values = np.asarray(image)
    if image.mode == "F":
        return np.clip(np.rint(values * 255.0), 0, 255).astype(np.uint8)
    return (np.clip(values, 0, 65535).astype(np.uint16) >> 8).astype(np.uint8)


class Raster:
    """
    Immutable 8-bit bitmap.

    The pixel array is copied on construction and marked non-writeable, so a
    Raster can be shared freely between handles and frames.
    """

    __slots__ = ("_pixels", "_colorspace")

    def __init__(self, pixels: np.ndarray, colorspace: ColorSpace):
        colorspace = ColorSpace(colorspace)
        if pixels is None or pixels.dtype != np.uint8:
            raise CannotCreateImageError("raster pixels must be a uint8 array")

        channels = CHANNELS[colorspace]
        if channels is None:
            if pixels.ndim != 2:
                raise InvalidColorspaceError(colorspace)
        elif pixels.ndim != 3 or pixels.shape[2] != channels:
            raise InvalidColorspaceError(colorspace)

        if pixels.shape[0] <= 0 or pixels.shape[1] <= 0:
            raise CannotCreateImageError(f"raster size {pixels.shape[1]}x{pixels.shape[0]}")

        data = np.array(pixels, dtype=np.uint8, copy=True, order="C")
        data.setflags(write=False)
        self._pixels = data
        self._colorspace = colorspace

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, pixels: np.ndarray, colorspace: Optional[ColorSpace] = None) -> "Raster":
        """
        Create a raster from an array, inferring the colorspace from its shape.

        2D arrays are gray, 2/3/4 channels are gray+alpha/RGB/RGBA. CMYK data
        must be passed with an explicit colorspace. Float arrays in [0, 1] are
        scaled to 8 bits.
        """
        arr = np.asarray(pixels)
        if arr.dtype != np.uint8:
            if np.issubdtype(arr.dtype, np.floating):
                arr = np.clip(np.rint(arr * 255.0), 0, 255).astype(np.uint8)
            else:
                arr = np.clip(arr, 0, 255).astype(np.uint8)

        if colorspace is None:
            if arr.ndim == 2:
                colorspace = ColorSpace.GRAY
            elif arr.ndim == 3 and arr.shape[2] == 2:
                colorspace = ColorSpace.GRAY_ALPHA
            elif arr.ndim == 3 and arr.shape[2] == 3:
                colorspace = ColorSpace.RGB
            elif arr.ndim == 3 and arr.shape[2] == 4:
                colorspace = ColorSpace.RGBA
            else:
                raise InvalidColorspaceError(f"array shape {arr.shape}")
        return cls(arr, colorspace)

    @classmethod
    def from_pil(cls, image: Image.Image) -> "Raster":
        """
        Create a raster from a PIL image.

        Modes without a direct colorspace are converted: anything carrying
        transparency becomes RGBA, everything else RGB. 1-bit images become
        GRAY; 16 and 32-bit integer gray is rescaled from the 16-bit range and
        float gray from [0, 1].
        """
        mode = image.mode
        if mode in _HIGH_DEPTH_GRAY_MODES:
            return cls(_gray_to_8bit(image), ColorSpace.GRAY)
        if mode not in _COLORSPACE_FOR_MODE:
            if mode == "1":
                image = image.convert("L")
            elif "A" in image.getbands() or "transparency" in image.info:
                image = image.convert("RGBA")
            else:
                image = image.convert("RGB")
            mode = image.mode

        colorspace = _COLORSPACE_FOR_MODE[mode]
        width, height = image.size
        buffer = np.frombuffer(image.tobytes(), dtype=np.uint8)
        channels = CHANNELS[colorspace]
        shape = (height, width) if channels is None else (height, width, channels)
        return cls(buffer.reshape(shape), colorspace)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def pixels(self) -> np.ndarray:
        """Read-only pixel array."""
        return self._pixels

    @property
    def colorspace(self) -> ColorSpace:
        return self._colorspace

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def bits_per_component(self) -> int:
        return ImageConstants.BITS_PER_COMPONENT

    @property
    def channels(self) -> int:
        return 1 if self._pixels.ndim == 2 else int(self._pixels.shape[2])

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)

    @property
    def rect(self) -> Rect:
        return Rect(x=0, y=0, width=self.width, height=self.height)

    @property
    def has_alpha(self) -> bool:
        return self._colorspace in (ColorSpace.RGBA, ColorSpace.GRAY_ALPHA)

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def copy(self) -> "Raster":
        """Deep copy."""
        try:
            return Raster(self._pixels, self._colorspace)
        except (MemoryError, ValueError) as e:
            logger.error(f"Failed to copy {self}: {e}")
            raise UnableToCopyError(str(e)) from e

    def to_pil(self) -> Image.Image:
        """Convert to a PIL image in the matching mode."""
        return Image.frombytes(
            PIL_MODES[self._colorspace], (self.width, self.height), self._pixels.tobytes()
        )

    def to_rgba_array(self) -> np.ndarray:
        """Straight-alpha RGBA uint8 array (h, w, 4)."""
        cs = self._colorspace
        px = self._pixels
        if cs == ColorSpace.RGBA:
            return px.copy()

        out = np.empty((self.height, self.width, 4), dtype=np.uint8)
        if cs == ColorSpace.RGB:
            out[..., :3] = px
            out[..., 3] = 255
        elif cs == ColorSpace.GRAY:
            out[..., :3] = px[..., None]
            out[..., 3] = 255
        elif cs == ColorSpace.GRAY_ALPHA:
            out[..., :3] = px[..., :1]
            out[..., 3] = px[..., 1]
        elif cs == ColorSpace.CMYK:
            out[..., :3] = np.asarray(self.to_pil().convert("RGB"), dtype=np.uint8)
            out[..., 3] = 255
        else:
            raise InvalidColorspaceError(cs)
        return out

    def to_premultiplied_rgba(self) -> np.ndarray:
        """Premultiplied RGBA float32 array (h, w, 4) with components in [0, 1]."""
        rgba = self.to_rgba_array().astype(np.float32) / 255.0
        rgba[..., :3] *= rgba[..., 3:4]
        return rgba

    def coverage(self) -> np.ndarray:
        """
        Single-channel float32 coverage in [0, 1].

        The alpha channel when present, otherwise the gray level (color
        rasters are reduced to luminance first).
        """
        cs = self._colorspace
        px = self._pixels
        if cs == ColorSpace.RGBA:
            values = px[..., 3]
        elif cs == ColorSpace.GRAY_ALPHA:
            values = px[..., 1]
        elif cs == ColorSpace.GRAY:
            values = px
        else:
            rgb = np.ascontiguousarray(self.to_rgba_array()[..., :3])
            values = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
        return values.astype(np.float32) / 255.0

    def __eq__(self, other) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self._colorspace == other._colorspace and np.array_equal(
            self._pixels, other._pixels
        )

    def __hash__(self) -> int:
        return hash((self._colorspace, self._pixels.shape, self._pixels.tobytes()[:64]))

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height}, {self._colorspace.value})"
