"""
Image transformation operations.

Every operation takes one or two Rasters plus parameters and returns a new
Raster; inputs are never modified. Apart from crop_image (a plain array
slice) and the color-controls filter, all operations render through a
DrawingContext.
"""

import logging
import math
from functools import wraps
from typing import Callable, Optional, Union

import cv2
import numpy as np

from common.base import Color, Rect, Size
from common.constants import Colors, ParameterRanges
from common.enums import BlendMode, ColorSpace, FlipType, Orientation, ScalingType
from common.exceptions import (
    CannotCreateImageError,
    InvalidParametersError,
    UnableToMaskError,
)
from core.context import DrawFunc, DrawingContext, create_image
from core.image.orientation import apply_orientation
from core.paths import Path
from core.patterns import PatternFill
from core.raster import Raster
from utils import timer

logger = logging.getLogger(__name__)

FillValue = Union[Color, PatternFill]

# Luma weights used by the color-controls saturation mix
_SATURATION_WEIGHTS = np.array([0.2125, 0.7154, 0.0721], dtype=np.float32)


def _timed(func):
    """Log the duration of a transformation at debug level."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        with timer() as t:
            result = func(*args, **kwargs)
        logger.debug(f"{func.__name__} took {t['ms']:.1f}ms")
        return result

    return wrapper


def _check_range(name: str, value: float, valid_range) -> None:
    low, high = valid_range
    if not (low <= value <= high):
        raise InvalidParametersError(name, value, valid_range)


# ==============================================================================
# Geometry
# ==============================================================================


@_timed
def crop_image(raster: Raster, rect: Rect) -> Raster:
    """
    Crop to a rectangle.

    The rect is expanded to whole pixels and intersected with the raster
    bounds, so a partially outside rect yields the overlapping part.

    Raises:
        CannotCreateImageError: If the rect does not overlap the raster
    """
    region = rect.integral().intersection(raster.rect)
    if region is None:
        raise CannotCreateImageError(f"crop rect {rect} lies outside {raster.width}x{raster.height}")
    x0, y0 = int(region.x), int(region.y)
    x1, y1 = int(region.max_x), int(region.max_y)
    return Raster(raster.pixels[y0:y1, x0:x1], raster.colorspace)


@_timed
def rotate_image_to(raster: Raster, orientation: Orientation) -> Raster:
    """
    Store upright pixels as if captured with `orientation`.

    This is the inverse of removing the orientation; the source colorspace
    is kept.
    """
    return apply_orientation(raster, orientation)


@_timed
def rotate_image_by(raster: Raster, radians: float) -> Raster:
    """
    Rotate about the centre; positive angles turn clockwise on screen.

    The output is the bounding box of the rotated source, transparent outside it.
    """
    w, h = raster.width, raster.height
    cos_a = abs(math.cos(radians))
    sin_a = abs(math.sin(radians))
    # Truncate like the context does, tolerating float noise at right angles
    out_w = math.floor(w * cos_a + h * sin_a + 1e-6)
    out_h = math.floor(w * sin_a + h * cos_a + 1e-6)

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.translate_by(size.width / 2.0, size.height / 2.0)
        ctx.rotate_by(radians)
        ctx.draw_image(raster, Rect(x=-w / 2.0, y=-h / 2.0, width=w, height=h))

    return create_image(Size(width=out_w, height=out_h), draw=draw)


def aspect_fit_rect(source: Size, target: Size) -> Rect:
    """
    Largest rect with the source aspect ratio fitting inside target, centred.

    The larger source dimension is mapped onto the matching target dimension,
    then the result is clamped so neither side exceeds the target.
    """
    ow, oh = source.width, source.height
    tw, th = target.width, target.height
    if ow > oh:
        dest_w = tw
        dest_h = oh * tw / ow
    else:
        dest_h = th
        dest_w = ow * th / oh

    if dest_w > tw:
        dest_w = tw
        dest_h = oh * tw / ow
    if dest_h > th:
        dest_h = th
        dest_w = ow * th / oh

    return Rect(x=(tw - dest_w) / 2.0, y=(th - dest_h) / 2.0, width=dest_w, height=dest_h)


def aspect_fill_rect(source: Size, target: Size) -> Rect:
    """Smallest rect with the source aspect ratio covering target, centred."""
    ow, oh = source.width, source.height
    tw, th = target.width, target.height
    if th / oh > tw / ow:
        dest_h = th
        dest_w = ow * th / oh
    else:
        dest_w = tw
        dest_h = oh * tw / ow
    return Rect(x=(tw - dest_w) / 2.0, y=(th - dest_h) / 2.0, width=dest_w, height=dest_h)


@_timed
def scale_image(raster: Raster, scaling_type: ScalingType, size: Size) -> Raster:
    """
    Scale into a canvas of exactly `size`.

    Args:
        raster: Source raster
        scaling_type: axes_independent stretches, aspect_fit letterboxes,
            aspect_fill crops the overflow
        size: Output size
    """
    scaling_type = ScalingType(scaling_type)
    if scaling_type == ScalingType.AXES_INDEPENDENT:
        dest = Rect.from_size(size)
    elif scaling_type == ScalingType.ASPECT_FIT:
        dest = aspect_fit_rect(raster.size, size)
    else:
        dest = aspect_fill_rect(raster.size, size)

    return create_image(size, draw=lambda ctx, _: ctx.draw_image(raster, dest))


@_timed
def scale_image_by(raster: Raster, factor: float) -> Raster:
    """Scale both dimensions by `factor`."""
    if factor <= 0:
        raise InvalidParametersError("factor", factor, (0, float("inf")))
    return scale_image(raster, ScalingType.ASPECT_FILL, raster.size.scaled(factor))


@_timed
def flip_image(raster: Raster, flip_type: FlipType = FlipType.HORIZONTALLY) -> Raster:
    """
    Mirror the raster.

    horizontally reverses the rows (top becomes bottom), vertically reverses
    the columns, both does each.
    """
    flip_type = FlipType(flip_type)

    def draw(ctx: DrawingContext, size: Size) -> None:
        if flip_type == FlipType.HORIZONTALLY:
            ctx.scale_by(1, -1)
            ctx.translate_by(0, -size.height)
        elif flip_type == FlipType.VERTICALLY:
            ctx.scale_by(-1, 1)
            ctx.translate_by(-size.width, 0)
        else:
            ctx.scale_by(-1, -1)
            ctx.translate_by(-size.width, -size.height)
        ctx.draw_image(raster, Rect.from_size(size))

    return create_image(raster.size, draw=draw)


# ==============================================================================
# Drawing
# ==============================================================================


def _draw_over(raster: Raster, draw: DrawFunc) -> Raster:
    """Draw the source, then run `draw` on top in its own saved state."""

    def render(ctx: DrawingContext, size: Size) -> None:
        with ctx.saving_state():
            ctx.draw_image(raster, Rect.from_size(size))
        with ctx.saving_state():
            draw(ctx, size)

    return create_image(raster.size, draw=render)


@_timed
def draw_on_image(raster: Raster, draw: DrawFunc) -> Raster:
    """Draw the source, then call `draw(ctx, size)` to paint over it."""
    return _draw_over(raster, draw)


@_timed
def draw_border(raster: Raster, color: Color, line_width: float = 1.0) -> Raster:
    """Stroke a border of `line_width` just inside the image edge."""

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.set_stroke_color(color)
        ctx.set_line_width(line_width)
        ctx.stroke_rect(Rect.from_size(size).inset_by(line_width / 2.0, line_width / 2.0))

    return _draw_over(raster, draw)


@_timed
def fill_path(raster: Raster, path: Path, fill: FillValue) -> Raster:
    """Fill `path` over the source."""

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.set_fill_color(fill)
        ctx.fill_path(path)

    return _draw_over(raster, draw)


@_timed
def stroke_path(raster: Raster, path: Path, color: Color, line_width: float = 1.0) -> Raster:
    """Stroke `path` over the source."""

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.set_stroke_color(color)
        ctx.set_line_width(line_width)
        ctx.stroke_path(path)

    return _draw_over(raster, draw)


@_timed
def fill_stroke_path(
    raster: Raster, path: Path, fill: FillValue, stroke: Color, line_width: float = 1.0
) -> Raster:
    """Fill then stroke `path` over the source."""

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.set_fill_color(fill)
        ctx.fill_path(path)
        ctx.set_stroke_color(stroke)
        ctx.set_line_width(line_width)
        ctx.stroke_path(path)

    return _draw_over(raster, draw)


# ==============================================================================
# Clipping and compositing
# ==============================================================================


@_timed
def clip_to_path(raster: Raster, path: Path) -> Raster:
    """Keep only the part of the raster inside `path`."""

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.clip_to_path(path)
        ctx.draw_image(raster, Rect.from_size(size))

    return create_image(raster.size, draw=draw)


@_timed
def composite_image(
    base: Raster,
    overlay: Raster,
    rect: Optional[Rect] = None,
    clip_path: Optional[Path] = None,
) -> Raster:
    """
    Draw `overlay` on top of `base`.

    Args:
        base: Background raster, defines the output size
        overlay: Raster drawn on top
        rect: Destination of the overlay (None = the whole base)
        clip_path: Optional path the overlay is clipped to
    """

    def draw(ctx: DrawingContext, size: Size) -> None:
        with ctx.saving_state():
            ctx.draw_image(base, Rect.from_size(size))
        with ctx.saving_state():
            if clip_path is not None:
                ctx.clip_to_path(clip_path)
            dest = rect if rect is not None and not rect.is_empty() else Rect.from_size(size)
            ctx.draw_image(overlay, dest)

    return create_image(base.size, draw=draw)


@_timed
def apply_clip(raster: Raster, clip_path: Path, draw: Callable[[Raster], Raster]) -> Raster:
    """
    Composite generated content, clipped to a path, over the raster.

    Args:
        raster: Background raster
        clip_path: Region the generated content is restricted to
        draw: Receives a transparent raster the size of `raster` and
            returns the content to apply
    """
    blank = create_image(raster.size)
    content = draw(blank)
    clipped = clip_to_path(content, clip_path)
    return composite_image(raster, clipped)


@_timed
def mask_image(raster: Raster, mask: Raster) -> Raster:
    """
    Mask a raster with another image.

    The mask (alpha when present, else gray level) is stretched over the
    raster and used as a clip. Pixels where the mask is fully transparent are
    removed entirely.

    Raises:
        UnableToMaskError: If the mask cannot be turned into coverage
    """
    try:
        coverage = mask.coverage()
        if coverage.shape != (raster.height, raster.width):
            coverage = cv2.resize(
                coverage, (raster.width, raster.height), interpolation=cv2.INTER_NEAREST
            )
    except (cv2.error, ValueError) as e:
        logger.error(f"Failed to build mask coverage from {mask}: {e}")
        raise UnableToMaskError(str(e)) from e

    def draw(ctx: DrawingContext, size: Size) -> None:
        r = Rect.from_size(size)
        ctx.clip_to_mask(r, mask)
        ctx.draw_image(raster, r)

    clipped = create_image(raster.size, draw=draw)
    pixels = np.array(clipped.pixels)
    pixels[coverage <= 0] = 0
    return Raster(pixels, ColorSpace.RGBA)


# ==============================================================================
# Color
# ==============================================================================


@_timed
def tint_image(raster: Raster, color: Color, keeping_alpha: bool = True) -> Raster:
    """
    Tint with a color, keeping the source luminance.

    Args:
        raster: Source raster
        color: Tint color
        keeping_alpha: Keep the source transparency; otherwise transparent
            areas come out black-tinted and opaque
    """

    def draw(ctx: DrawingContext, size: Size) -> None:
        r = Rect.from_size(size)
        ctx.set_blend_mode(BlendMode.NORMAL)
        ctx.set_fill_color(Color.from_rgba(Colors.BLACK))
        ctx.fill_rect(r)

        ctx.draw_image(raster, r)

        ctx.set_blend_mode(BlendMode.COLOR)
        ctx.set_fill_color(color)
        ctx.fill_rect(r)

        if keeping_alpha:
            ctx.set_blend_mode(BlendMode.DESTINATION_IN)
            ctx.draw_image(raster, r)

    return create_image(raster.size, draw=draw)


@_timed
def grayscale_image(raster: Raster, keeping_alpha: bool = True) -> Raster:
    """Convert to gray (gray+alpha when keeping alpha, else gray over black)."""
    colorspace = ColorSpace.GRAY_ALPHA if keeping_alpha else ColorSpace.GRAY
    ctx = DrawingContext(raster.size, colorspace)
    ctx.draw_image(raster, raster.rect)
    return ctx.make_image()


@_timed
def apply_alpha(raster: Raster, alpha: float) -> Raster:
    """
    Multiply the raster opacity by `alpha`.

    Raises:
        InvalidParametersError: If alpha is outside [0, 1]
    """
    _check_range("alpha", alpha, ParameterRanges.ALPHA)

    def draw(ctx: DrawingContext, size: Size) -> None:
        ctx.set_alpha(alpha)
        ctx.draw_image(raster, Rect.from_size(size))

    return create_image(raster.size, draw=draw)


def _convert(raster: Raster, colorspace: ColorSpace) -> Raster:
    ctx = DrawingContext(raster.size, colorspace)
    ctx.draw_image(raster, raster.rect)
    return ctx.make_image()


@_timed
def convert_to_cmyk(raster: Raster) -> Raster:
    """Redraw into a CMYK context (transparency is composited over black)."""
    return _convert(raster, ColorSpace.CMYK)


@_timed
def convert_to_rgba(raster: Raster) -> Raster:
    """Redraw into an RGBA context."""
    return _convert(raster, ColorSpace.RGBA)


@_timed
def adjust_colors(
    raster: Raster, saturation: float = 1.0, brightness: float = 0.0, contrast: float = 1.0
) -> Raster:
    """
    Color-controls filter.

    Saturation mixes each pixel with its luma (0 = gray, 1 = unchanged),
    brightness is added to every channel and contrast scales about mid-gray.
    Transparency is preserved.

    Args:
        raster: Source raster
        saturation: 0.0 ... 2.0
        brightness: -1.0 ... 1.0
        contrast: 0.25 ... 4.0

    Raises:
        InvalidParametersError: If a parameter is out of range
    """
    _check_range("saturation", saturation, ParameterRanges.SATURATION)
    _check_range("brightness", brightness, ParameterRanges.BRIGHTNESS)
    _check_range("contrast", contrast, ParameterRanges.CONTRAST)

    rgba = _convert(raster, ColorSpace.RGBA).pixels.astype(np.float32) / 255.0
    rgb = rgba[..., :3]
    luma = (rgb @ _SATURATION_WEIGHTS)[..., None]
    rgb = luma + (rgb - luma) * saturation
    rgb = rgb + brightness
    rgb = (rgb - 0.5) * contrast + 0.5

    out = np.empty_like(rgba)
    out[..., :3] = rgb
    out[..., 3] = rgba[..., 3]
    return Raster(np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8), ColorSpace.RGBA)
