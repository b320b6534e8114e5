"""
Base data models - fundamental types without dependencies.

This module contains basic Pydantic models used throughout the system:
- Point: 2D point with x, y coordinates
- Size: width/height pair
- Rect: rectangle with geometric operations
- Color: RGBA color with 0-1 components

IMPORTANT: This module must NOT import from core, imagesource or config
to avoid circular dependencies.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """2D Point"""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Size(BaseModel):
    """Width/height pair in pixels (may be fractional)."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(..., ge=0, description="Width")
    height: float = Field(..., ge=0, description="Height")

    @classmethod
    def square(cls, dimension: float) -> "Size":
        return cls(width=dimension, height=dimension)

    def integral(self) -> Tuple[int, int]:
        """Return (width, height) truncated to whole pixels."""
        return int(self.width), int(self.height)

    def scaled(self, factor: float) -> "Size":
        return Size(width=self.width * factor, height=self.height * factor)

    def swapped(self) -> "Size":
        return Size(width=self.height, height=self.width)


class Rect(BaseModel):
    """
    Rectangle in pixel space (origin top-left, y downward).

    Used for crop regions, draw destinations and path construction.
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(default=0.0, description="X coordinate")
    y: float = Field(default=0.0, description="Y coordinate")
    width: float = Field(..., ge=0, description="Width")
    height: float = Field(..., ge=0, description="Height")

    @classmethod
    def from_size(cls, size: Size, x: float = 0.0, y: float = 0.0) -> "Rect":
        """Create a rect at (x, y) with the given size."""
        return cls(x=x, y=y, width=size.width, height=size.height)

    @classmethod
    def from_points(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        """Create rect from two corner points."""
        return cls(x=min(x1, x2), y=min(y1, y2), width=abs(x2 - x1), height=abs(y2 - y1))

    @property
    def max_x(self) -> float:
        """Get right edge coordinate."""
        return self.x + self.width

    @property
    def max_y(self) -> float:
        """Get bottom edge coordinate."""
        return self.y + self.height

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2.0, y=self.y + self.height / 2.0)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def inset_by(self, dx: float, dy: float) -> "Rect":
        """Shrink the rect by dx on the left/right and dy on the top/bottom."""
        return Rect(
            x=self.x + dx,
            y=self.y + dy,
            width=max(0.0, self.width - 2 * dx),
            height=max(0.0, self.height - 2 * dy),
        )

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Get intersection with another rect, or None if they do not overlap."""
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.max_x, other.max_x)
        y2 = min(self.max_y, other.max_y)
        if x2 <= x1 or y2 <= y1:
            return None
        return Rect.from_points(x1, y1, x2, y2)

    def integral(self) -> "Rect":
        """Smallest rect with integer coordinates containing this rect."""
        x1 = math.floor(self.x)
        y1 = math.floor(self.y)
        x2 = math.ceil(self.max_x)
        y2 = math.ceil(self.max_y)
        return Rect.from_points(x1, y1, x2, y2)

    def contains_point(self, x: float, y: float) -> bool:
        """Check if point is inside rect."""
        return self.x <= x < self.max_x and self.y <= y < self.max_y


class Color(BaseModel):
    """RGBA color, straight (non-premultiplied) components in the range 0-1."""

    model_config = ConfigDict(frozen=True)

    r: float = Field(..., ge=0.0, le=1.0)
    g: float = Field(..., ge=0.0, le=1.0)
    b: float = Field(..., ge=0.0, le=1.0)
    a: float = Field(default=1.0, ge=0.0, le=1.0)

    @classmethod
    def from_rgba(cls, rgba: Tuple[float, ...]) -> "Color":
        """Create from a (r, g, b) or (r, g, b, a) tuple of 0-1 floats."""
        if len(rgba) == 3:
            return cls(r=rgba[0], g=rgba[1], b=rgba[2])
        return cls(r=rgba[0], g=rgba[1], b=rgba[2], a=rgba[3])

    @classmethod
    def gray(cls, white: float, alpha: float = 1.0) -> "Color":
        return cls(r=white, g=white, b=white, a=alpha)

    def to_rgba_tuple(self) -> Tuple[float, float, float, float]:
        return (self.r, self.g, self.b, self.a)

    def to_rgba8(self) -> Tuple[int, int, int, int]:
        """Components scaled to 0-255 integers."""
        return tuple(int(round(c * 255)) for c in self.to_rgba_tuple())  # type: ignore[return-value]

    def to_hex(self, include_alpha: bool = True) -> str:
        """Format as #rrggbbaa (or #rrggbb)."""
        r, g, b, a = self.to_rgba8()
        if include_alpha:
            return f"#{r:02x}{g:02x}{b:02x}{a:02x}"
        return f"#{r:02x}{g:02x}{b:02x}"

    def with_alpha(self, alpha: float) -> "Color":
        return Color(r=self.r, g=self.g, b=self.b, a=alpha)
