"""
Pattern generators.

A pattern owns a cell-drawing callback and is registered in a process-wide
token table. Drawing contexts only ever see a PatternFill (token plus tiling
geometry); when they need a cell they ask the registry to dispatch the token
back to the owning pattern. Once a pattern is released (explicitly or by
garbage collection) its token disappears and dispatching it raises
PatternReleasedError.
"""

import itertools
import logging
import weakref
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Optional, Union

from common.base import Color, Rect
from common.enums import PatternTiling
from common.exceptions import InvalidParametersError, PatternReleasedError

logger = logging.getLogger(__name__)

# Cell drawing callback, receives a DrawingContext sized to the cell bounds
PatternDrawFunc = Callable[[object], None]


@dataclass(frozen=True)
class PatternFill:
    """Fill value referring to a registered pattern."""

    token: int
    bounds: Rect
    x_step: float
    y_step: float
    tiling: PatternTiling = PatternTiling.CONSTANT_SPACING
    colored: bool = True
    color: Optional[Color] = None


class PatternRegistry:
    """Process-wide token table mapping pattern tokens to live patterns."""

    _patterns: "weakref.WeakValueDictionary[int, _Pattern]" = weakref.WeakValueDictionary()
    _tokens = itertools.count(1)
    _lock = RLock()

    @classmethod
    def register(cls, pattern: "_Pattern") -> int:
        with cls._lock:
            token = next(cls._tokens)
            cls._patterns[token] = pattern
        logger.debug(f"Registered pattern {token}")
        return token

    @classmethod
    def unregister(cls, token: int) -> None:
        with cls._lock:
            cls._patterns.pop(token, None)
        logger.debug(f"Unregistered pattern {token}")

    @classmethod
    def is_registered(cls, token: int) -> bool:
        with cls._lock:
            return token in cls._patterns

    @classmethod
    def count(cls) -> int:
        with cls._lock:
            return len(cls._patterns)

    @classmethod
    def dispatch(cls, token: int, ctx) -> None:
        """
        Ask the pattern owning `token` to draw one cell into `ctx`.

        Raises:
            PatternReleasedError: If the token is unknown or has been released
        """
        with cls._lock:
            pattern = cls._patterns.get(token)
        if pattern is None:
            raise PatternReleasedError(token)
        pattern._draw(ctx)


class _Pattern:
    """Shared lifecycle for color and mask patterns."""

    colored = True

    def __init__(
        self,
        bounds: Rect,
        x_step: float,
        y_step: float,
        tiling: PatternTiling = PatternTiling.CONSTANT_SPACING,
        draw: Optional[PatternDrawFunc] = None,
    ):
        if bounds.is_empty():
            raise InvalidParametersError("bounds", bounds, (1, float("inf")))
        if x_step <= 0:
            raise InvalidParametersError("x_step", x_step, (0, float("inf")))
        if y_step <= 0:
            raise InvalidParametersError("y_step", y_step, (0, float("inf")))
        if draw is None:
            raise InvalidParametersError("draw", draw, (1, 1))

        self.bounds = bounds
        self.x_step = float(x_step)
        self.y_step = float(y_step)
        self.tiling = PatternTiling(tiling)
        self._draw_func = draw
        self._token: Optional[int] = PatternRegistry.register(self)
        self._finalizer = weakref.finalize(self, PatternRegistry.unregister, self._token)

    @property
    def token(self) -> Optional[int]:
        return self._token

    @property
    def released(self) -> bool:
        return self._token is None

    def _make_fill(self, color: Optional[Color] = None) -> PatternFill:
        if self._token is None:
            raise PatternReleasedError(-1)
        return PatternFill(
            token=self._token,
            bounds=self.bounds,
            x_step=self.x_step,
            y_step=self.y_step,
            tiling=self.tiling,
            colored=self.colored,
            color=color,
        )

    def _draw(self, ctx) -> None:
        self._draw_func(ctx)

    def release(self) -> None:
        """Unregister the pattern; fills created from it stop drawing."""
        if self._token is not None:
            self._finalizer()
            self._token = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class ColorPattern(_Pattern):
    """
    Pattern whose cell callback draws its own colors.

    Example:
        >>> def cell(ctx):
        ...     ctx.set_fill_color(BLACK)
        ...     ctx.fill_rect(Rect(x=0, y=0, width=5, height=5))
        >>> with ColorPattern(Rect(width=10, height=10), 10, 10, draw=cell) as pattern:
        ...     image = create_image(Size.square(100), background_color=pattern.fill)
    """

    colored = True

    @property
    def fill(self) -> PatternFill:
        return self._make_fill()


class MaskPattern(_Pattern):
    """Pattern whose cell callback only defines shape; color is chosen per fill."""

    colored = False

    def fill_with(self, color: Union[Color, str]) -> PatternFill:
        """
        Create a fill drawing the pattern shape in `color`.

        Args:
            color: Color or hex string

        Raises:
            InvalidHexColorError: If a hex string cannot be parsed
        """
        if not isinstance(color, Color):
            # Imported here, core.image imports the drawing context
            from core.image.colors import hex_color

            color = hex_color(color)
        return self._make_fill(color)
