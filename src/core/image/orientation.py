"""
EXIF orientation handling.

Each orientation maps to (degrees, swap, mirrored): the rotation (positive is
clockwise on screen), whether width and height trade places, and whether the
result is mirrored about the vertical axis. Removing an orientation applies
that transform so the pixels display upright; applying an orientation is the
inverse.
"""

import logging
import math
from typing import Tuple

from common.base import Rect, Size
from common.enums import Orientation
from core.context import DrawingContext
from core.raster import Raster
from utils import timer

logger = logging.getLogger(__name__)

# (degrees, swap width/height, mirrored) to bring stored pixels upright
ORIENTATION_TRANSFORMS = {
    Orientation.UP: (0.0, False, False),
    Orientation.UP_MIRRORED: (0.0, False, True),
    Orientation.DOWN: (180.0, False, False),
    Orientation.DOWN_MIRRORED: (180.0, False, True),
    Orientation.LEFT_MIRRORED: (90.0, True, True),
    Orientation.RIGHT: (90.0, True, False),
    Orientation.RIGHT_MIRRORED: (-90.0, True, True),
    Orientation.LEFT: (-90.0, True, False),
}


def orientation_transform(orientation: Orientation) -> Tuple[float, bool, bool]:
    """Return (degrees, swap, mirrored) that removes `orientation`."""
    return ORIENTATION_TRANSFORMS[Orientation(orientation)]


def inverse_orientation_transform(orientation: Orientation) -> Tuple[float, bool, bool]:
    """Return (degrees, swap, mirrored) that applies `orientation` to upright pixels."""
    degrees, swap, mirrored = orientation_transform(orientation)
    # Mirrored transforms (flips, transpose, transverse) are their own inverse
    if mirrored:
        return degrees, swap, mirrored
    return -degrees, swap, mirrored


def reorient(raster: Raster, degrees: float, swap: bool, mirrored: bool) -> Raster:
    """
    Rotate and optionally mirror a raster about its centre.

    The output keeps the source colorspace; width and height are exchanged
    when `swap` is set.
    """
    out_w, out_h = raster.width, raster.height
    if swap:
        out_w, out_h = out_h, out_w

    ctx = DrawingContext(Size(width=out_w, height=out_h), raster.colorspace)
    ctx.translate_by(out_w / 2.0, out_h / 2.0)
    if mirrored:
        ctx.scale_by(-1.0, 1.0)
    ctx.rotate_by(math.radians(degrees))
    ctx.translate_by(-raster.width / 2.0, -raster.height / 2.0)
    ctx.draw_image(raster, Rect(x=0, y=0, width=raster.width, height=raster.height))
    return ctx.make_image()


def remove_orientation(raster: Raster, orientation: Orientation) -> Raster:
    """
    Return upright pixels for a raster stored with an EXIF orientation.

    Args:
        raster: Stored pixels
        orientation: Orientation recorded for those pixels

    Returns:
        A copy when the orientation is already up, otherwise the reoriented raster
    """
    orientation = Orientation(orientation)
    if orientation == Orientation.UP:
        return raster.copy()

    with timer() as t:
        result = reorient(raster, *orientation_transform(orientation))
    logger.debug(f"Removed orientation {orientation.name} in {t['ms']:.1f}ms")
    return result


def apply_orientation(raster: Raster, orientation: Orientation) -> Raster:
    """Inverse of remove_orientation: store upright pixels as `orientation`."""
    orientation = Orientation(orientation)
    if orientation == Orientation.UP:
        return raster.copy()
    return reorient(raster, *inverse_orientation_transform(orientation))
