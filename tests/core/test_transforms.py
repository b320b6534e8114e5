"""
Unit tests for image transformation operations
"""

import math

import numpy as np
import pytest

from common.base import Color, Rect, Size
from common.enums import ColorSpace, FlipType, Orientation, ScalingType
from common.exceptions import CannotCreateImageError, InvalidParametersError
from core.image.transforms import (
    adjust_colors,
    apply_alpha,
    apply_clip,
    aspect_fill_rect,
    aspect_fit_rect,
    clip_to_path,
    composite_image,
    convert_to_cmyk,
    convert_to_rgba,
    crop_image,
    draw_border,
    draw_on_image,
    fill_stroke_path,
    flip_image,
    grayscale_image,
    mask_image,
    rotate_image_by,
    rotate_image_to,
    scale_image,
    scale_image_by,
    tint_image,
)
from core.paths import Path
from core.raster import Raster

GREEN = Color(r=0, g=1, b=0)
WHITE = Color(r=1, g=1, b=1)


class TestCrop:
    """Tests for crop_image"""

    def test_crop_inside(self, marker_raster):
        """Test cropping a region fully inside"""
        result = crop_image(marker_raster, Rect(x=1, y=1, width=2, height=2))
        assert np.array_equal(result.pixels, marker_raster.pixels[1:3, 1:3])

    def test_crop_partially_outside_is_intersected(self, marker_raster):
        """Test rects sticking out are clipped to the bounds"""
        result = crop_image(marker_raster, Rect(x=2, y=-5, width=10, height=7))
        assert result.size == Size(width=2, height=2)
        assert np.array_equal(result.pixels, marker_raster.pixels[0:2, 2:4])

    def test_crop_outside_raises(self, marker_raster):
        """Test rects not overlapping the raster are rejected"""
        with pytest.raises(CannotCreateImageError):
            crop_image(marker_raster, Rect(x=10, y=10, width=5, height=5))


class TestRotate:
    """Tests for rotations"""

    def test_rotate_quarter_turn_clockwise(self, marker_raster):
        """Test a positive quarter turn is clockwise and exact"""
        result = rotate_image_by(marker_raster, math.pi / 2)
        assert result.size == Size(width=3, height=4)
        assert np.array_equal(result.pixels, np.rot90(marker_raster.pixels, -1))

    def test_rotate_half_turn(self, marker_raster):
        """Test a half turn keeps the size"""
        result = rotate_image_by(marker_raster, math.pi)
        assert np.array_equal(result.pixels, np.rot90(marker_raster.pixels, 2))

    def test_rotate_arbitrary_grows_bounds(self, split_raster):
        """Test non-right angles produce the rotated bounding box"""
        result = rotate_image_by(split_raster, math.radians(30))
        c, s = math.cos(math.radians(30)), math.sin(math.radians(30))
        assert result.width == math.floor(40 * c + 30 * s)
        assert result.height == math.floor(40 * s + 30 * c)
        assert result.pixels[0, 0, 3] == 0

    @pytest.mark.parametrize("orientation", list(Orientation))
    def test_rotate_to_keeps_colorspace(self, orientation):
        """Test rotate_image_to keeps the source colorspace"""
        gray = Raster(np.arange(12, dtype=np.uint8).reshape(3, 4), ColorSpace.GRAY)
        result = rotate_image_to(gray, orientation)
        assert result.colorspace == ColorSpace.GRAY

    @pytest.mark.parametrize("colorspace", list(ColorSpace))
    def test_rotate_to_accepts_every_colorspace(self, colorspace):
        """Test every raster colorspace can be re-oriented"""
        shape = {
            ColorSpace.GRAY: (3, 4),
            ColorSpace.GRAY_ALPHA: (3, 4, 2),
            ColorSpace.RGB: (3, 4, 3),
            ColorSpace.RGBA: (3, 4, 4),
            ColorSpace.CMYK: (3, 4, 4),
        }[colorspace]
        raster = Raster(np.full(shape, 255, dtype=np.uint8), colorspace)
        result = rotate_image_to(raster, Orientation.RIGHT)
        assert result.colorspace == colorspace
        assert (result.width, result.height) == (3, 4)


class TestScale:
    """Tests for scaling"""

    def test_aspect_fit_sweep_never_exceeds_target(self):
        """Test aspect-fit rects always fit inside the target"""
        dimensions = [1, 3, 10, 17, 64, 100, 333, 1000]
        for sw in dimensions:
            for sh in dimensions:
                for tw in dimensions:
                    for th in dimensions:
                        rect = aspect_fit_rect(Size(width=sw, height=sh), Size(width=tw, height=th))
                        assert rect.width <= tw + 1e-9
                        assert rect.height <= th + 1e-9
                        assert rect.width / rect.height == pytest.approx(sw / sh)
                        assert rect.x == pytest.approx((tw - rect.width) / 2)
                        assert rect.y == pytest.approx((th - rect.height) / 2)

    def test_aspect_fit_letterboxes(self):
        """Test a wide source is centred vertically"""
        rect = aspect_fit_rect(Size(width=200, height=100), Size(width=100, height=100))
        assert rect == Rect(x=0, y=25, width=100, height=50)

    def test_aspect_fill_covers(self):
        """Test aspect-fill rect covers the target"""
        rect = aspect_fill_rect(Size(width=200, height=100), Size(width=100, height=100))
        assert rect == Rect(x=-50, y=0, width=200, height=100)

    @pytest.mark.parametrize("scaling_type", list(ScalingType))
    def test_output_size_is_target(self, split_raster, scaling_type):
        """Test every scaling type produces the requested size"""
        result = scale_image(split_raster, scaling_type, Size(width=25, height=25))
        assert result.size == Size(width=25, height=25)

    def test_aspect_fit_transparent_bars(self, split_raster):
        """Test letterbox bars stay transparent"""
        result = scale_image(split_raster, ScalingType.ASPECT_FIT, Size(width=40, height=40))
        assert result.pixels[0, 20, 3] == 0
        assert result.pixels[20, 5, 3] == 255

    def test_scale_by(self, split_raster):
        """Test scaling both dimensions by a factor"""
        result = scale_image_by(split_raster, 0.5)
        assert result.size == Size(width=20, height=15)
        assert tuple(result.pixels[7, 2]) == (255, 0, 0, 255)
        assert tuple(result.pixels[7, 17]) == (0, 0, 255, 255)

    def test_scale_by_invalid(self, split_raster):
        """Test non-positive factors are rejected"""
        with pytest.raises(InvalidParametersError):
            scale_image_by(split_raster, 0)


class TestFlip:
    """Tests for flip_image"""

    def test_horizontally_reverses_rows(self, marker_raster):
        """Test horizontal flip turns the image upside down"""
        result = flip_image(marker_raster, FlipType.HORIZONTALLY)
        assert np.array_equal(result.pixels, marker_raster.pixels[::-1])

    def test_vertically_reverses_columns(self, marker_raster):
        """Test vertical flip mirrors left and right"""
        result = flip_image(marker_raster, FlipType.VERTICALLY)
        assert np.array_equal(result.pixels, marker_raster.pixels[:, ::-1])

    def test_both(self, marker_raster):
        """Test flipping both axes"""
        result = flip_image(marker_raster, FlipType.BOTH)
        assert np.array_equal(result.pixels, marker_raster.pixels[::-1, ::-1])


class TestDrawing:
    """Tests for drawing over images"""

    def test_draw_on_image(self, split_raster):
        """Test callback draws over the source"""

        def draw(ctx, size):
            ctx.set_fill_color(GREEN)
            ctx.fill_rect(Rect(x=0, y=0, width=2, height=2))

        result = draw_on_image(split_raster, draw)
        assert tuple(result.pixels[0, 0]) == (0, 255, 0, 255)
        assert tuple(result.pixels[10, 10]) == (255, 0, 0, 255)

    def test_draw_border(self, split_raster):
        """Test border is drawn inside the edge"""
        result = draw_border(split_raster, GREEN, line_width=2)
        assert tuple(result.pixels[0, 0]) == (0, 255, 0, 255)
        assert tuple(result.pixels[1, 10]) == (0, 255, 0, 255)
        assert tuple(result.pixels[29, 39]) == (0, 255, 0, 255)
        assert tuple(result.pixels[2, 10]) == (255, 0, 0, 255)

    def test_fill_stroke_path(self, split_raster):
        """Test fill then stroke"""
        path = Path.rect(Rect(x=10.5, y=10.5, width=10, height=10))
        result = fill_stroke_path(split_raster, path, WHITE, GREEN, 1.0)
        assert tuple(result.pixels[15, 15]) == (255, 255, 255, 255)
        assert tuple(result.pixels[10, 15]) == (0, 255, 0, 255)


class TestClipping:
    """Tests for clipping, compositing and masking"""

    def test_clip_to_path(self, split_raster):
        """Test only the inside of the path remains"""
        result = clip_to_path(split_raster, Path.rect(Rect(width=10, height=10)))
        assert result.pixels[5, 5, 3] == 255
        assert result.pixels[15, 15, 3] == 0

    def test_composite_into_rect(self, split_raster, transparent_raster):
        """Test overlay is drawn into the rect over the base"""
        result = composite_image(split_raster, transparent_raster, Rect(x=0, y=0, width=20, height=20))
        assert tuple(result.pixels[10, 10]) == (0, 255, 0, 255)
        assert tuple(result.pixels[0, 0]) == (255, 0, 0, 255)
        assert tuple(result.pixels[25, 35]) == (0, 0, 255, 255)

    def test_composite_with_clip(self, split_raster, transparent_raster):
        """Test overlay is restricted to the clip path"""
        result = composite_image(
            split_raster,
            transparent_raster,
            Rect(x=0, y=0, width=20, height=20),
            clip_path=Path.rect(Rect(x=0, y=0, width=10, height=20)),
        )
        assert tuple(result.pixels[8, 8]) == (0, 255, 0, 255)
        assert tuple(result.pixels[8, 12]) == (255, 0, 0, 255)

    def test_apply_clip(self, split_raster):
        """Test generated content is applied only inside the clip"""

        def content(blank):
            assert blank.size == split_raster.size
            return Raster(np.full((30, 40, 4), 255, dtype=np.uint8), ColorSpace.RGBA)

        result = apply_clip(split_raster, Path.rect(Rect(x=0, y=0, width=10, height=10)), content)
        assert tuple(result.pixels[5, 5]) == (255, 255, 255, 255)
        assert tuple(result.pixels[20, 5]) == (255, 0, 0, 255)

    def test_mask_image(self, split_raster, transparent_raster):
        """Test mask is stretched and fully masked pixels are removed"""
        result = mask_image(split_raster, transparent_raster)
        assert result.size == split_raster.size
        assert result.pixels[15, 20, 3] == 255
        assert not result.pixels[0, 0].any()
        assert not result.pixels[29, 39].any()


class TestColor:
    """Tests for color operations"""

    def test_tint_gray_keeps_luminance_order(self):
        """Test tinting mid gray red yields a red-dominant color"""
        gray = Raster(np.full((4, 4, 4), (128, 128, 128, 255), dtype=np.uint8), ColorSpace.RGBA)
        result = tint_image(gray, Color(r=1, g=0, b=0))
        r, g, b, a = (int(v) for v in result.pixels[1, 1])
        assert r > g
        assert g == b
        assert a == 255

    def test_tint_keeps_alpha(self, transparent_raster):
        """Test transparent areas stay transparent"""
        result = tint_image(transparent_raster, Color(r=0, g=0, b=1))
        assert result.pixels[0, 0, 3] == 0
        assert result.pixels[10, 10, 3] == 255
        assert result.pixels[10, 10, 2] > result.pixels[10, 10, 0]

    def test_tint_without_alpha_is_opaque(self, transparent_raster):
        """Test keeping_alpha=False fills transparent areas"""
        result = tint_image(transparent_raster, Color(r=0, g=0, b=1), keeping_alpha=False)
        assert result.pixels[:, :, 3].min() == 255

    def test_grayscale(self, split_raster, transparent_raster):
        """Test grayscale colorspaces"""
        assert grayscale_image(split_raster).colorspace == ColorSpace.GRAY_ALPHA
        assert grayscale_image(split_raster, keeping_alpha=False).colorspace == ColorSpace.GRAY
        result = grayscale_image(transparent_raster)
        assert result.pixels[0, 0, 1] == 0
        assert result.pixels[10, 10, 1] == 255

    def test_apply_alpha(self, split_raster):
        """Test global opacity"""
        result = apply_alpha(split_raster, 0.5)
        assert tuple(result.pixels[0, 0]) == (255, 0, 0, 128)

    @pytest.mark.parametrize("alpha", [-0.1, 1.1])
    def test_apply_alpha_invalid(self, split_raster, alpha):
        """Test alpha outside [0, 1] is rejected"""
        with pytest.raises(InvalidParametersError):
            apply_alpha(split_raster, alpha)

    def test_colorspace_conversions(self, split_raster):
        """Test CMYK and RGBA conversion"""
        cmyk = convert_to_cmyk(split_raster)
        assert cmyk.colorspace == ColorSpace.CMYK
        assert tuple(cmyk.pixels[0, 0]) == (0, 255, 255, 0)
        rgba = convert_to_rgba(cmyk)
        assert tuple(rgba.pixels[0, 0]) == (255, 0, 0, 255)

    def test_adjust_colors_identity(self, split_raster):
        """Test default parameters leave the image unchanged"""
        assert adjust_colors(split_raster) == split_raster

    def test_adjust_colors_desaturate(self, split_raster):
        """Test zero saturation gives gray"""
        px = adjust_colors(split_raster, saturation=0.0).pixels
        assert px[0, 0, 0] == px[0, 0, 1] == px[0, 0, 2]
        assert px[0, 0, 3] == 255

    def test_adjust_colors_brightness(self, split_raster):
        """Test brightness is added to every channel"""
        px = adjust_colors(split_raster, brightness=0.2).pixels
        assert tuple(px[0, 0, :3]) == (255, 51, 51)

    @pytest.mark.parametrize(
        "kwargs",
        [{"saturation": 2.5}, {"saturation": -0.1}, {"brightness": 1.5}, {"contrast": 0.1}, {"contrast": 5}],
    )
    def test_adjust_colors_invalid(self, split_raster, kwargs):
        """Test out of range parameters are rejected"""
        with pytest.raises(InvalidParametersError):
            adjust_colors(split_raster, **kwargs)
