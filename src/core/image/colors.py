"""
Color utilities.

Hex string parsing, named colors and WCAG luminance/contrast helpers used to
pick a readable text color for an arbitrary background.
"""

import logging
import re
from typing import Optional

from common.base import Color
from common.constants import Colors
from common.exceptions import InvalidHexColorError

logger = logging.getLogger(__name__)

# Named colors
CLEAR = Color.from_rgba(Colors.CLEAR)
BLACK = Color.from_rgba(Colors.BLACK)
WHITE = Color.from_rgba(Colors.WHITE)
GRAY = Color.from_rgba(Colors.GRAY)

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]+)$")
_HEX_LENGTHS = (3, 4, 6, 8)

# WCAG 2.x relative luminance
_LINEAR_THRESHOLD = 0.03928
_LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)


def hex_color(value: str) -> Color:
    """
    Parse a hex color string.

    Accepts an optional leading '#' followed by 3, 4, 6 or 8 hex digits
    (RGB, RGBA, RRGGBB, RRGGBBAA). Short forms double every digit, so
    "#abc" equals "#aabbcc".

    Args:
        value: Hex string, case-insensitive

    Returns:
        Parsed Color

    Raises:
        InvalidHexColorError: If the string is not a valid hex color
    """
    if not isinstance(value, str):
        raise InvalidHexColorError(str(value))

    match = _HEX_PATTERN.match(value.strip())
    if match is None or len(match.group(1)) not in _HEX_LENGTHS:
        raise InvalidHexColorError(value)

    digits = match.group(1).lower()
    if len(digits) in (3, 4):
        digits = "".join(d * 2 for d in digits)
    if len(digits) == 6:
        digits += "ff"

    components = [int(digits[i : i + 2], 16) / 255.0 for i in range(0, 8, 2)]
    return Color.from_rgba(tuple(components))


def try_hex_color(value: str) -> Optional[Color]:
    """Parse a hex color string, returning None instead of raising."""
    try:
        return hex_color(value)
    except InvalidHexColorError:
        logger.debug(f"Ignoring invalid hex color {value!r}")
        return None


def resolve_color(value) -> Color:
    """Accept a Color or a hex string and return a Color."""
    if isinstance(value, Color):
        return value
    return hex_color(value)


def _linearize(component: float) -> float:
    if component < _LINEAR_THRESHOLD:
        return component / 12.92
    return ((component + 0.055) / 1.055) ** 2.4


def luminance(color: Color) -> float:
    """Relative luminance of a color (alpha ignored)."""
    wr, wg, wb = _LUMINANCE_WEIGHTS
    return wr * _linearize(color.r) + wg * _linearize(color.g) + wb * _linearize(color.b)


def contrast_ratio(first: Color, second: Color) -> float:
    """Contrast ratio between two colors, from 1 (none) to 21 (black on white)."""
    l1 = luminance(first)
    l2 = luminance(second)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def contrasting_text_color(color: Color) -> Color:
    """
    Pick black or white, whichever reads better on the given background.

    Args:
        color: Background color

    Returns:
        BLACK if it contrasts more with the background than WHITE does, else WHITE
    """
    if contrast_ratio(color, BLACK) > contrast_ratio(color, WHITE):
        return BLACK
    return WHITE
