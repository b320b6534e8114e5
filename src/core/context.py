"""
Drawing context - offscreen canvas with a graphics state stack.

The context owns a premultiplied RGBA float32 buffer and a stack of graphics
states (transform, clip, alpha, blend mode, colors, line width). Drawing is
done with OpenCV primitives:

- draw_image: cv2.warpAffine of the premultiplied source under the current
  transform (cv2.resize with INTER_AREA first when shrinking)
- fill/stroke: path coverage via cv2.fillPoly / cv2.polylines on a
  supersampled region, averaged down with INTER_AREA
- snapshot: unpremultiply and convert to the context colorspace

Coordinates: origin top-left, y down, pixel (row, col) covers the unit square
[col, col + 1) x [row, row + 1).
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from common.base import Color, Rect, Size
from common.constants import ImageConstants
from common.enums import BlendMode, ColorSpace, PatternTiling
from common.exceptions import (
    InvalidContextError,
    PatternReleasedError,
    UnableToCreateImageFromContextError,
)
from config import get_settings
from core.paths import Path
from core.patterns import PatternFill, PatternRegistry
from core.raster import Raster

logger = logging.getLogger(__name__)

FillValue = Union[Color, PatternFill]
DrawFunc = Callable[["DrawingContext", Size], None]

# Rasterization
SUPERSAMPLE = 4
FIXED_POINT_SHIFT = 8
MAX_LOCAL_COORDINATE = 1_000_000
_EPSILON = 1e-9

INTERPOLATION_FLAGS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "nearest": cv2.INTER_NEAREST,
}

_BLACK = Color(r=0.0, g=0.0, b=0.0)


# ==============================================================================
# Affine matrix helpers (3x3, column vectors)
# ==============================================================================


def translation_matrix(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])


def scale_matrix(sx: float, sy: float) -> np.ndarray:
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])


def rotation_matrix(radians: float) -> np.ndarray:
    """Rotation by `radians`; positive angles turn clockwise on screen (y down)."""
    c = math.cos(radians)
    s = math.sin(radians)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _premultiplied(color: Color) -> np.ndarray:
    return np.array([color.r * color.a, color.g * color.a, color.b * color.a, color.a], np.float32)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values * 255.0), 0, 255).astype(np.uint8)


def _rect_coverage(x0: float, y0: float, x1: float, y1: float, width: int, height: int) -> np.ndarray:
    """Exact area coverage of an axis-aligned rectangle."""
    cols = np.arange(width, dtype=np.float64)
    rows = np.arange(height, dtype=np.float64)
    cov_x = np.clip(np.minimum(x1, cols + 1) - np.maximum(x0, cols), 0.0, 1.0)
    cov_y = np.clip(np.minimum(y1, rows + 1) - np.maximum(y0, rows), 0.0, 1.0)
    return np.outer(cov_y, cov_x).astype(np.float32)


def _axis_aligned_rect(points: np.ndarray) -> Optional[Tuple[float, float, float, float]]:
    """(x0, y0, x1, y1) if the 4-point polygon is an axis-aligned rectangle."""
    if len(points) != 4:
        return None
    for i in range(4):
        a = points[i]
        b = points[(i + 1) % 4]
        if abs(a[0] - b[0]) > _EPSILON and abs(a[1] - b[1]) > _EPSILON:
            return None
    xs = points[:, 0]
    ys = points[:, 1]
    return float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max())


# ==============================================================================
# Blending (premultiplied)
# ==============================================================================


def _lum(rgb: np.ndarray) -> np.ndarray:
    return 0.3 * rgb[..., 0:1] + 0.59 * rgb[..., 1:2] + 0.11 * rgb[..., 2:3]


def _clip_color(rgb: np.ndarray) -> np.ndarray:
    lum = _lum(rgb)
    lo = rgb.min(axis=-1, keepdims=True)
    hi = rgb.max(axis=-1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        low_fix = np.where(lo < 0, lum + (rgb - lum) * lum / (lum - lo), rgb)
        result = np.where(hi > 1, lum + (low_fix - lum) * (1 - lum) / (hi - lum), low_fix)
    return np.nan_to_num(result)


def _set_lum(rgb: np.ndarray, lum: np.ndarray) -> np.ndarray:
    return _clip_color(rgb + (lum - _lum(rgb)))


def _unpremultiply(premult: np.ndarray) -> np.ndarray:
    alpha = premult[..., 3:4]
    with np.errstate(divide="ignore", invalid="ignore"):
        rgb = np.where(alpha > 0, premult[..., :3] / alpha, 0.0)
    return np.clip(rgb, 0.0, 1.0)


def blend(src: np.ndarray, dst: np.ndarray, mode: BlendMode) -> np.ndarray:
    """
    Composite a premultiplied source over a premultiplied destination.

    Args:
        src: Source pixels (..., 4), broadcastable to dst
        dst: Destination pixels (..., 4)
        mode: Blend mode

    Returns:
        Result pixels with the shape of dst
    """
    src = np.broadcast_to(src, dst.shape)
    sa = src[..., 3:4]
    da = dst[..., 3:4]

    if mode == BlendMode.NORMAL:
        return src + dst * (1.0 - sa)
    if mode == BlendMode.COPY:
        return src.copy()
    if mode == BlendMode.DESTINATION_IN:
        return dst * sa
    if mode == BlendMode.DESTINATION_OUT:
        return dst * (1.0 - sa)

    alpha = sa + da - sa * da
    sc = src[..., :3]
    dc = dst[..., :3]
    if mode == BlendMode.MULTIPLY:
        rgb = sc * dc + sc * (1.0 - da) + dc * (1.0 - sa)
    elif mode == BlendMode.SCREEN:
        rgb = sc + dc - sc * dc
    elif mode in (BlendMode.COLOR, BlendMode.LUMINOSITY):
        cs = _unpremultiply(src)
        cb = _unpremultiply(dst)
        if mode == BlendMode.COLOR:
            mixed = _set_lum(cs, _lum(cb))
        else:
            mixed = _set_lum(cb, _lum(cs))
        rgb = (1.0 - da) * sc + (1.0 - sa) * dc + sa * da * mixed
    else:
        raise InvalidContextError(f"unsupported blend mode {mode}")
    return np.concatenate([rgb, alpha], axis=-1)


# ==============================================================================
# Graphics state
# ==============================================================================


@dataclass
class GraphicsState:
    """One entry of the graphics state stack."""

    ctm: np.ndarray = field(default_factory=lambda: np.eye(3))
    clip: Optional[np.ndarray] = None
    alpha: float = 1.0
    blend_mode: BlendMode = BlendMode.NORMAL
    fill: FillValue = _BLACK
    stroke: Color = _BLACK
    line_width: float = 1.0

    def copy(self) -> "GraphicsState":
        # Clip arrays are replaced, never mutated in place, so sharing is safe
        return GraphicsState(
            ctm=self.ctm.copy(),
            clip=self.clip,
            alpha=self.alpha,
            blend_mode=self.blend_mode,
            fill=self.fill,
            stroke=self.stroke,
            line_width=self.line_width,
        )


# ==============================================================================
# Drawing context
# ==============================================================================


class DrawingContext:
    """
    Offscreen drawing surface.

    Example:
        >>> ctx = DrawingContext(Size(width=100, height=50))
        >>> ctx.set_fill_color(Color(r=1, g=0, b=0))
        >>> ctx.fill_rect(Rect(x=10, y=10, width=20, height=20))
        >>> raster = ctx.make_image()
    """

    def __init__(
        self,
        size: Size,
        colorspace: ColorSpace = ColorSpace.RGBA,
        interpolation: Optional[str] = None,
    ):
        width, height = size.integral()
        if width <= 0 or height <= 0:
            raise InvalidContextError(f"size {width}x{height} is empty")
        if (
            width > ImageConstants.MAX_CONTEXT_DIMENSION
            or height > ImageConstants.MAX_CONTEXT_DIMENSION
            or width * height > ImageConstants.MAX_CONTEXT_PIXELS
        ):
            raise InvalidContextError(f"size {width}x{height} is too large")

        try:
            self._colorspace = ColorSpace(colorspace)
        except ValueError as e:
            raise InvalidContextError(f"unsupported colorspace {colorspace}") from e

        if interpolation is None:
            interpolation = get_settings().image.interpolation
        if interpolation not in INTERPOLATION_FLAGS:
            raise InvalidContextError(f"unknown interpolation {interpolation}")
        self._interpolation = interpolation

        self._width = width
        self._height = height
        self._buffer = np.zeros((height, width, 4), dtype=np.float32)
        self._state = GraphicsState()
        self._stack: List[GraphicsState] = []
        self._current_path = Path()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Size:
        return Size(width=self._width, height=self._height)

    @property
    def bounds(self) -> Rect:
        return Rect(x=0, y=0, width=self._width, height=self._height)

    @property
    def colorspace(self) -> ColorSpace:
        return self._colorspace

    @property
    def ctm(self) -> np.ndarray:
        """Copy of the current transform matrix (user space to device space)."""
        return self._state.ctm.copy()

    @property
    def alpha(self) -> float:
        return self._state.alpha

    @property
    def blend_mode(self) -> BlendMode:
        return self._state.blend_mode

    @property
    def fill_color(self) -> FillValue:
        return self._state.fill

    @property
    def stroke_color(self) -> Color:
        return self._state.stroke

    @property
    def line_width(self) -> float:
        return self._state.line_width

    @property
    def state_depth(self) -> int:
        return len(self._stack)

    # ------------------------------------------------------------------
    # Graphics state
    # ------------------------------------------------------------------

    def save_state(self) -> None:
        self._stack.append(self._state.copy())

    def restore_state(self) -> None:
        if not self._stack:
            logger.warning("restore_state called with an empty state stack")
            return
        self._state = self._stack.pop()

    @contextmanager
    def saving_state(self):
        """Save the graphics state and restore it on exit, even if the body raises."""
        self.save_state()
        try:
            yield self
        finally:
            self.restore_state()

    def set_fill_color(self, fill: FillValue) -> None:
        if not isinstance(fill, (Color, PatternFill)):
            raise InvalidContextError(f"unsupported fill {fill!r}")
        self._state.fill = fill

    def set_stroke_color(self, color: Color) -> None:
        if not isinstance(color, Color):
            raise InvalidContextError(f"unsupported stroke color {color!r}")
        self._state.stroke = color

    def set_line_width(self, width: float) -> None:
        self._state.line_width = max(0.0, float(width))

    def set_alpha(self, alpha: float) -> None:
        self._state.alpha = min(1.0, max(0.0, float(alpha)))

    def set_blend_mode(self, mode: BlendMode) -> None:
        self._state.blend_mode = BlendMode(mode)

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------

    def concat(self, matrix: np.ndarray) -> None:
        """Prepend an affine transform (2x3 or 3x3) to the current transform."""
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape == (2, 3):
            m = np.vstack([m, [0.0, 0.0, 1.0]])
        if m.shape != (3, 3):
            raise InvalidContextError(f"transform must be 2x3 or 3x3, got {m.shape}")
        self._state.ctm = self._state.ctm @ m

    def translate_by(self, tx: float, ty: float) -> None:
        self.concat(translation_matrix(tx, ty))

    def scale_by(self, sx: float, sy: float) -> None:
        self.concat(scale_matrix(sx, sy))

    def rotate_by(self, radians: float) -> None:
        self.concat(rotation_matrix(radians))

    def user_to_device(self, x: float, y: float) -> Tuple[float, float]:
        p = self._state.ctm @ np.array([x, y, 1.0])
        return float(p[0]), float(p[1])

    # ------------------------------------------------------------------
    # Current path
    # ------------------------------------------------------------------

    def begin_path(self) -> None:
        self._current_path = Path()

    def add_path(self, path: Path) -> None:
        self._current_path.add_path(path.transformed(self._state.ctm))

    def add_rect(self, rect: Rect) -> None:
        self.add_path(Path.rect(rect))

    def add_ellipse(self, rect: Rect) -> None:
        self.add_path(Path.ellipse(rect))

    def add_arc(
        self,
        cx: float,
        cy: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        clockwise: bool = False,
    ) -> None:
        arc = Path().add_arc(cx, cy, radius, start_angle, end_angle, clockwise)
        self.add_path(arc)

    def _take_path(self, path: Optional[Path]) -> Path:
        """Device-space path: the given one, or the current path (which is consumed)."""
        if path is not None:
            return path.transformed(self._state.ctm)
        device_path = self._current_path
        self._current_path = Path()
        return device_path

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def clear(self, rect: Optional[Rect] = None) -> None:
        """Make the area transparent (the whole context when rect is None)."""
        if rect is None:
            coverage = np.ones((self._height, self._width), np.float32)
        else:
            coverage = self._fill_coverage(Path.rect(rect).transformed(self._state.ctm))
        if self._state.clip is not None:
            coverage = coverage * self._state.clip
        self._buffer *= 1.0 - coverage[..., None]

    def fill_rect(self, rect: Rect) -> None:
        self.fill_path(Path.rect(rect))

    def fill_ellipse(self, rect: Rect) -> None:
        self.fill_path(Path.ellipse(rect))

    def fill_path(self, path: Optional[Path] = None) -> None:
        """Fill a path (or the current path) with the fill color or pattern."""
        device_path = self._take_path(path)
        coverage = self._fill_coverage(device_path)
        self._composite(self._fill_source(self._state.fill), coverage)

    def stroke_rect(self, rect: Rect) -> None:
        self.stroke_path(Path.rect(rect))

    def stroke_ellipse(self, rect: Rect) -> None:
        self.stroke_path(Path.ellipse(rect))

    def stroke_path(self, path: Optional[Path] = None) -> None:
        """Stroke a path (or the current path) centred on its outline."""
        device_path = self._take_path(path)
        scale = math.sqrt(abs(np.linalg.det(self._state.ctm[:2, :2])))
        width = self._state.line_width * scale
        if width <= 0:
            return
        coverage = self._stroke_coverage(device_path, width)
        self._composite(_premultiplied(self._state.stroke), coverage)

    def draw_image(self, raster: Raster, rect: Optional[Rect] = None) -> None:
        """
        Draw a raster scaled into `rect` (user space, defaults to the raster bounds).

        Row 0 of the raster is drawn at the top of the rect.
        """
        rect = rect if rect is not None else raster.rect
        if rect.is_empty():
            return
        source = raster.to_premultiplied_rgba()
        warped, coverage = self._warp_into_device(source, rect)
        self._composite(warped, coverage)

    # ------------------------------------------------------------------
    # Clipping
    # ------------------------------------------------------------------

    def clip_to_path(self, path: Optional[Path] = None) -> None:
        self._intersect_clip(self._fill_coverage(self._take_path(path)))

    def clip_to_rect(self, rect: Rect) -> None:
        self.clip_to_path(Path.rect(rect))

    def clip_to_mask(self, rect: Rect, mask: Raster) -> None:
        """
        Clip to a mask image drawn into `rect`.

        The mask is its alpha channel when it has one, otherwise its gray
        level. Everything outside the rect is clipped away.
        """
        if rect.is_empty():
            self._intersect_clip(np.zeros((self._height, self._width), np.float32))
            return
        values = mask.coverage()
        warped, coverage = self._warp_into_device(values[..., None], rect)
        self._intersect_clip(warped[..., 0] * coverage)

    def reset_clip(self) -> None:
        self._state.clip = None

    def _intersect_clip(self, coverage: np.ndarray) -> None:
        if self._state.clip is None:
            self._state.clip = coverage
        else:
            self._state.clip = self._state.clip * coverage

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def make_image(self) -> Raster:
        """
        Snapshot the context into a Raster in the context colorspace.

        Colorspaces without alpha (rgb, gray, cmyk) are composited over black.

        Raises:
            UnableToCreateImageFromContextError: If the conversion fails
        """
        try:
            premult = np.clip(self._buffer, 0.0, 1.0)
            cs = self._colorspace
            if cs in (ColorSpace.RGBA, ColorSpace.GRAY_ALPHA):
                rgb8 = _to_uint8(_unpremultiply(premult))
                alpha8 = _to_uint8(premult[..., 3])
                if cs == ColorSpace.RGBA:
                    return Raster(np.dstack([rgb8, alpha8]), ColorSpace.RGBA)
                gray = cv2.cvtColor(rgb8, cv2.COLOR_RGB2GRAY)
                return Raster(np.dstack([gray, alpha8]), ColorSpace.GRAY_ALPHA)

            rgb8 = _to_uint8(premult[..., :3])
            if cs == ColorSpace.RGB:
                return Raster(rgb8, ColorSpace.RGB)
            if cs == ColorSpace.GRAY:
                return Raster(cv2.cvtColor(rgb8, cv2.COLOR_RGB2GRAY), ColorSpace.GRAY)

            image = Image.frombytes("RGB", (self._width, self._height), rgb8.tobytes())
            return Raster.from_pil(image.convert("CMYK"))
        except (cv2.error, ValueError, OSError, MemoryError) as e:
            logger.error(f"Failed to snapshot {self._width}x{self._height} context: {e}")
            raise UnableToCreateImageFromContextError(str(e)) from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _composite(self, source: np.ndarray, coverage: np.ndarray) -> None:
        """Blend source into the buffer, weighted by coverage, clip and alpha."""
        cov = coverage * self._state.alpha
        if self._state.clip is not None:
            cov = cov * self._state.clip

        rows = np.flatnonzero(cov.any(axis=1))
        cols = np.flatnonzero(cov.any(axis=0))
        if rows.size == 0:
            return
        region = (slice(rows[0], rows[-1] + 1), slice(cols[0], cols[-1] + 1))

        dst = self._buffer[region]
        src = source if source.ndim == 1 else source[region]
        result = blend(src, dst, self._state.blend_mode)
        weight = cov[region][..., None]
        self._buffer[region] = dst + (result - dst) * weight

    def _fill_source(self, fill: FillValue) -> np.ndarray:
        if isinstance(fill, Color):
            return _premultiplied(fill)
        return self._pattern_source(fill)

    def _pattern_source(self, fill: PatternFill) -> np.ndarray:
        """Render one pattern cell and tile it over the whole context."""
        bounds = fill.bounds
        cell_w = max(1, int(math.ceil(bounds.width)))
        cell_h = max(1, int(math.ceil(bounds.height)))

        cell_ctx = DrawingContext(Size(width=cell_w, height=cell_h), interpolation=self._interpolation)
        cell_ctx.translate_by(-bounds.x, -bounds.y)
        cell_ctx.clip_to_rect(bounds)
        if not fill.colored:
            shape_color = fill.color or _BLACK
            cell_ctx.set_fill_color(shape_color)
            cell_ctx.set_stroke_color(shape_color)

        try:
            PatternRegistry.dispatch(fill.token, cell_ctx)
        except PatternReleasedError:
            logger.error(f"Pattern {fill.token} released before drawing")
            raise

        cell = cell_ctx._buffer
        if not fill.colored:
            cell = _premultiplied(fill.color or _BLACK) * cell[..., 3:4]
        return self._tile(cell, fill)

    def _tile(self, cell: np.ndarray, fill: PatternFill) -> np.ndarray:
        cell_h, cell_w = cell.shape[:2]
        bounds = fill.bounds
        out = np.zeros((self._height, self._width, 4), np.float32)

        if fill.tiling == PatternTiling.NO_DISTORTION:
            xs = self._tile_positions(bounds.x, fill.x_step, cell_w, self._width, exact=True)
            ys = self._tile_positions(bounds.y, fill.y_step, cell_h, self._height, exact=True)
        else:
            step_x = max(1, int(round(fill.x_step)))
            step_y = max(1, int(round(fill.y_step)))
            if step_x >= cell_w and step_y >= cell_h:
                period = np.zeros((step_y, step_x, 4), np.float32)
                period[:cell_h, :cell_w] = cell
                reps = (self._height // step_y + 2, self._width // step_x + 2, 1)
                tiled = np.tile(period, reps)
                start_y = (-int(round(bounds.y))) % step_y
                start_x = (-int(round(bounds.x))) % step_x
                return np.ascontiguousarray(
                    tiled[start_y : start_y + self._height, start_x : start_x + self._width]
                )
            xs = self._tile_positions(bounds.x, step_x, cell_w, self._width, exact=False)
            ys = self._tile_positions(bounds.y, step_y, cell_h, self._height, exact=False)

        for y in ys:
            for x in xs:
                y0, y1 = max(0, y), min(self._height, y + cell_h)
                x0, x1 = max(0, x), min(self._width, x + cell_w)
                if y1 <= y0 or x1 <= x0:
                    continue
                piece = cell[y0 - y : y1 - y, x0 - x : x1 - x]
                target = out[y0:y1, x0:x1]
                out[y0:y1, x0:x1] = piece + target * (1.0 - piece[..., 3:4])
        return out

    @staticmethod
    def _tile_positions(origin: float, step: float, cell: int, extent: int, exact: bool) -> List[int]:
        first = int(math.floor((-cell - origin) / step))
        last = int(math.ceil((extent - origin) / step))
        if exact:
            return [int(round(origin + i * step)) for i in range(first, last + 1)]
        base = int(round(origin))
        return [base + i * int(step) for i in range(first, last + 1)]

    def _warp_into_device(self, source: np.ndarray, rect: Rect) -> Tuple[np.ndarray, np.ndarray]:
        """
        Map a (h, w, c) float source into device space, scaled into `rect`.

        Returns the warped source (colors renormalized by edge coverage) and
        the coverage of the source area in device space.
        """
        src_h, src_w = source.shape[:2]
        m = (
            self._state.ctm
            @ translation_matrix(rect.x, rect.y)
            @ scale_matrix(rect.width / src_w, rect.height / src_h)
        )

        # Area-average first when shrinking, bilinear alone aliases
        sx = math.hypot(m[0, 0], m[1, 0])
        sy = math.hypot(m[0, 1], m[1, 1])
        if sx < 1.0 - _EPSILON or sy < 1.0 - _EPSILON:
            new_w = max(1, int(round(src_w * min(sx, 1.0))))
            new_h = max(1, int(round(src_h * min(sy, 1.0))))
            if (new_w, new_h) != (src_w, src_h):
                channels = source.shape[2]
                source = cv2.resize(source, (new_w, new_h), interpolation=cv2.INTER_AREA)
                if source.ndim == 2:
                    source = source.reshape(new_h, new_w, channels)
                m = m @ scale_matrix(src_w / new_w, src_h / new_h)
                src_h, src_w = new_h, new_w

        # Continuous coordinates to OpenCV pixel-centre indices
        m_idx = translation_matrix(-0.5, -0.5) @ m @ translation_matrix(0.5, 0.5)
        affine = m_idx[:2]
        flags = INTERPOLATION_FLAGS[self._interpolation]
        if self._is_pixel_aligned(m_idx):
            affine = np.rint(affine)
            flags = cv2.INTER_NEAREST

        dsize = (self._width, self._height)
        warped = cv2.warpAffine(
            source, affine, dsize, flags=flags, borderMode=cv2.BORDER_CONSTANT, borderValue=0
        )
        if warped.ndim == 2:
            warped = warped[..., None]
        ones = np.ones((src_h, src_w), np.float32)
        coverage = cv2.warpAffine(
            ones, affine, dsize, flags=flags, borderMode=cv2.BORDER_CONSTANT, borderValue=0
        )
        coverage = np.clip(coverage, 0.0, 1.0)

        with np.errstate(divide="ignore", invalid="ignore"):
            warped = np.where(coverage[..., None] > _EPSILON, warped / coverage[..., None], 0.0)
        return np.clip(warped, 0.0, 1.0).astype(np.float32), coverage

    @staticmethod
    def _is_pixel_aligned(m_idx: np.ndarray) -> bool:
        """True when the map is a signed permutation with integer offsets."""
        linear = m_idx[:2, :2]
        rounded = np.rint(linear)
        if np.abs(linear - rounded).max() > 1e-9:
            return False
        magnitude = np.abs(rounded)
        if not (
            np.array_equal(magnitude, np.eye(2)) or np.array_equal(magnitude, np.eye(2)[::-1])
        ):
            return False
        offsets = m_idx[:2, 2]
        return bool(np.abs(offsets - np.rint(offsets)).max() < 1e-6)

    def _fill_coverage(self, device_path: Path) -> np.ndarray:
        polylines = device_path.polylines()
        if len(polylines) == 1 and polylines[0][1]:
            rect = _axis_aligned_rect(polylines[0][0])
            if rect is not None:
                return _rect_coverage(*rect, self._width, self._height)
        return self._rasterize(polylines, stroke_width=None)

    def _stroke_coverage(self, device_path: Path, width: float) -> np.ndarray:
        polylines = device_path.polylines()
        if len(polylines) == 1 and polylines[0][1]:
            rect = _axis_aligned_rect(polylines[0][0])
            if rect is not None:
                x0, y0, x1, y1 = rect
                half = width / 2.0
                outer = _rect_coverage(x0 - half, y0 - half, x1 + half, y1 + half, self._width, self._height)
                if x1 - x0 > width and y1 - y0 > width:
                    inner = _rect_coverage(x0 + half, y0 + half, x1 - half, y1 - half, self._width, self._height)
                    return np.clip(outer - inner, 0.0, 1.0)
                return outer
        return self._rasterize(polylines, stroke_width=width)

    def _rasterize(
        self, polylines: List[Tuple[np.ndarray, bool]], stroke_width: Optional[float]
    ) -> np.ndarray:
        """Coverage of polygons (even-odd fill) or polylines (stroke) via supersampling."""
        coverage = np.zeros((self._height, self._width), np.float32)
        if not polylines:
            return coverage

        pad = 0.0 if stroke_width is None else stroke_width / 2.0 + 1.0
        points = np.concatenate([p for p, _ in polylines])
        x0 = max(0, int(math.floor(points[:, 0].min() - pad)))
        y0 = max(0, int(math.floor(points[:, 1].min() - pad)))
        x1 = min(self._width, int(math.ceil(points[:, 0].max() + pad)))
        y1 = min(self._height, int(math.ceil(points[:, 1].max() + pad)))
        if x1 <= x0 or y1 <= y0:
            return coverage

        ss = SUPERSAMPLE
        one = 1 << FIXED_POINT_SHIFT
        region = np.zeros(((y1 - y0) * ss, (x1 - x0) * ss), np.uint8)
        origin = np.array([x0, y0], dtype=np.float64)

        fixed = []
        for poly, _ in polylines:
            local = np.clip((poly - origin) * ss, -MAX_LOCAL_COORDINATE, MAX_LOCAL_COORDINATE)
            fixed.append(np.rint(local * one - one / 2).astype(np.int32).reshape(-1, 1, 2))

        if stroke_width is None:
            cv2.fillPoly(region, fixed, 255, lineType=cv2.LINE_8, shift=FIXED_POINT_SHIFT)
        else:
            thickness = max(1, int(round(stroke_width * ss)))
            for pts, (_, closed) in zip(fixed, polylines):
                cv2.polylines(
                    region, [pts], closed, 255, thickness=thickness, lineType=cv2.LINE_8, shift=FIXED_POINT_SHIFT
                )

        small = cv2.resize(region, (x1 - x0, y1 - y0), interpolation=cv2.INTER_AREA)
        coverage[y0:y1, x0:x1] = small.astype(np.float32) / 255.0
        return coverage


def create_image(
    size: Size,
    background_color: Optional[FillValue] = None,
    draw: Optional[DrawFunc] = None,
    colorspace: ColorSpace = ColorSpace.RGBA,
) -> Raster:
    """
    Create a raster by drawing into a fresh context.

    Args:
        size: Output size (truncated to whole pixels)
        background_color: Optional flood fill (color or pattern fill)
        draw: Optional callback receiving (context, size)
        colorspace: Context colorspace

    Returns:
        Snapshot of the context
    """
    ctx = DrawingContext(size, colorspace)
    if background_color is not None:
        with ctx.saving_state():
            ctx.set_fill_color(background_color)
            ctx.fill_rect(ctx.bounds)
    if draw is not None:
        with ctx.saving_state():
            draw(ctx, ctx.size)
    return ctx.make_image()
