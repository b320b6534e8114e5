"""
Unit tests for EXIF orientation handling
"""

import numpy as np
import pytest
from PIL import Image

from common.base import Size
from common.enums import Orientation
from core.image.orientation import apply_orientation, orientation_transform, remove_orientation
from core.raster import Raster

# Pillow transpose that displays each orientation upright
PIL_TRANSPOSE = {
    Orientation.UP_MIRRORED: Image.Transpose.FLIP_LEFT_RIGHT,
    Orientation.DOWN: Image.Transpose.ROTATE_180,
    Orientation.DOWN_MIRRORED: Image.Transpose.FLIP_TOP_BOTTOM,
    Orientation.LEFT_MIRRORED: Image.Transpose.TRANSPOSE,
    Orientation.RIGHT: Image.Transpose.ROTATE_270,
    Orientation.RIGHT_MIRRORED: Image.Transpose.TRANSVERSE,
    Orientation.LEFT: Image.Transpose.ROTATE_90,
}


class TestRemoveOrientation:
    """Tests for remove_orientation"""

    def test_up_returns_equal_copy(self, marker_raster):
        """Test the up orientation leaves pixels unchanged"""
        result = remove_orientation(marker_raster, Orientation.UP)
        assert result == marker_raster
        assert result is not marker_raster

    @pytest.mark.parametrize("orientation", list(PIL_TRANSPOSE))
    def test_matches_pillow_transpose(self, marker_raster, orientation):
        """Test removal matches the transpose Pillow uses for the same tag"""
        expected = Raster.from_pil(marker_raster.to_pil().transpose(PIL_TRANSPOSE[orientation]))
        result = remove_orientation(marker_raster, orientation)
        assert np.array_equal(result.pixels, expected.pixels)

    @pytest.mark.parametrize("orientation", list(Orientation))
    def test_swapped_size(self, marker_raster, orientation):
        """Test width and height trade places for the 90 degree orientations"""
        _, swap, _ = orientation_transform(orientation)
        result = remove_orientation(marker_raster, orientation)
        expected = marker_raster.size.swapped() if swap else marker_raster.size
        assert result.size == expected

    def test_right_is_quarter_turn_clockwise(self, marker_raster):
        """Test orientation 6 turns the stored pixels clockwise"""
        result = remove_orientation(marker_raster, Orientation.RIGHT)
        assert result.size == Size(width=3, height=4)
        assert np.array_equal(result.pixels, np.rot90(marker_raster.pixels, -1))


class TestApplyOrientation:
    """Tests for apply_orientation"""

    @pytest.mark.parametrize("orientation", list(Orientation))
    def test_apply_then_remove_is_identity(self, marker_raster, orientation):
        """Test applying then removing an orientation restores the pixels"""
        stored = apply_orientation(marker_raster, orientation)
        assert remove_orientation(stored, orientation) == marker_raster

    @pytest.mark.parametrize("orientation", list(Orientation))
    def test_remove_then_apply_is_identity(self, marker_raster, orientation):
        """Test removing then applying an orientation restores the pixels"""
        upright = remove_orientation(marker_raster, orientation)
        assert apply_orientation(upright, orientation) == marker_raster
