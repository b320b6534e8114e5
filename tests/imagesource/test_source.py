"""
Unit tests for ImageSource and ImageFrame
"""

import io

import numpy as np
import pytest
from PIL import Image, TiffImagePlugin

from common.base import Size
from common.enums import ColorSpace, ImageFormat, Orientation
from common.exceptions import CannotCreateDestinationError, InvalidImageError
from config import reload_settings
from core.raster import Raster
from imagesource import ImageSource

FRAME_COLORS = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]


def _first_pixel(frame):
    return frame.raster.to_pil().convert("RGB").getpixel((0, 0))


class TestImageSource:
    """Tests for container decoding"""

    def test_gif_frames_in_order(self, four_frame_gif_bytes):
        """Test every GIF frame is decoded, in order"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert source.format == ImageFormat.GIF
        assert source.count == 4
        assert len(source) == 4
        assert [_first_pixel(frame) for frame in source] == FRAME_COLORS

    def test_random_access(self, four_frame_gif_bytes):
        """Test frames decode correctly out of order"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert _first_pixel(source[3]) == FRAME_COLORS[3]
        assert _first_pixel(source[1]) == FRAME_COLORS[1]
        assert _first_pixel(source[0]) == FRAME_COLORS[0]

    def test_out_of_range(self, four_frame_gif_bytes):
        """Test out of range indices give None, or IndexError when subscripting"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert source.frame(-1) is None
        assert source.frame(4) is None
        with pytest.raises(IndexError):
            source[4]

    def test_frames_are_cached(self, four_frame_gif_bytes):
        """Test the same frame object and raster are returned on every access"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert source.frame(2) is source.frame(2)
        assert source.frame(2).raster is source.frame(2).raster

    def test_gif_delays(self, four_frame_gif_bytes):
        """Test delays are reported in seconds, clamped to the minimum"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert [f.gif_delay for f in source] == pytest.approx([0.1, 0.2, 0.1, 0.3])
        assert [f.gif_delay_unclamped for f in source] == pytest.approx([0.1, 0.2, 0.05, 0.3])
        assert source.first.gif_properties["LoopCount"] == 0

    def test_gif_minimum_delay_setting(self, monkeypatch, four_frame_gif_bytes):
        """Test the clamp follows configuration"""

        monkeypatch.setenv("IMGTOOLS_IMAGE_GIF_MINIMUM_DELAY", "0.02")
        reload_settings()
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        assert source[2].gif_delay == pytest.approx(0.05)

    def test_non_gif_delay_is_zero(self, png_bytes):
        """Test frames of other formats report no delay"""
        frame = ImageSource.from_bytes(png_bytes).first
        assert frame.gif_delay == 0.0
        assert frame.gif_properties is None

    def test_default_dpi(self, png_bytes):
        """Test frames without resolution report 72 dpi"""
        frame = ImageSource.from_bytes(png_bytes).first
        assert frame.dpi == Size(width=72, height=72)
        assert frame.dpi_fraction == Size(width=1, height=1)

    def test_invalid_data(self):
        """Test undecodable bytes are rejected"""
        with pytest.raises(InvalidImageError):
            ImageSource.from_bytes(b"\x00\x01\x02 nothing here")

    def test_missing_file(self, tmp_path):
        """Test unreadable files are rejected"""
        with pytest.raises(InvalidImageError):
            ImageSource.from_file(tmp_path / "missing.png")

    def test_from_file(self, tmp_path, png_bytes):
        """Test reading a container from disk keeps the bytes"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)
        source = ImageSource.from_file(path)
        assert source.data == png_bytes
        assert source.format == ImageFormat.PNG

    def test_16_bit_gray_png(self):
        """Test 16-bit gray PNG decodes to mid gray, not white"""
        buffer = io.BytesIO()
        Image.fromarray(np.full((6, 8), 32768, dtype=np.uint16)).save(buffer, format="PNG")
        raster = ImageSource.from_bytes(buffer.getvalue()).first.raster
        assert raster.colorspace == ColorSpace.GRAY
        assert raster.pixels[0, 0] == 128


class TestLocation:
    """Tests for GPS handling"""

    def test_location(self, gps_jpeg_bytes):
        """Test the location is read from the GPS IFD"""
        source = ImageSource.from_bytes(gps_jpeg_bytes)
        assert source.has_location
        latitude, longitude = source.location.as_tuple()
        assert latitude == pytest.approx(43.468365, abs=1e-4)
        assert longitude == pytest.approx(11.881635, abs=1e-4)

    def test_southern_western_location(self):
        """Test S and W references give negative values"""
        exif = Image.Exif()
        exif[0x8825] = {
            1: "S",
            2: (TiffImagePlugin.IFDRational(33, 1), TiffImagePlugin.IFDRational(30, 1), TiffImagePlugin.IFDRational(0, 1)),
            3: "W",
            4: (TiffImagePlugin.IFDRational(70, 1), TiffImagePlugin.IFDRational(15, 1), TiffImagePlugin.IFDRational(0, 1)),
        }
        buffer = io.BytesIO()
        Image.new("RGB", (8, 8)).save(buffer, format="JPEG", exif=exif.tobytes())

        location = ImageSource.from_bytes(buffer.getvalue()).location
        assert location.as_tuple() == pytest.approx((-33.5, -70.25))

    def test_void_status_has_no_location(self, void_gps_jpeg_bytes):
        """Test a void GPS fix is treated as no location"""
        source = ImageSource.from_bytes(void_gps_jpeg_bytes)
        assert source.location is None
        assert not source.has_location
        assert source.first.gps_properties is None

    def test_no_gps(self, png_bytes):
        """Test images without GPS have no location"""
        assert ImageSource.from_bytes(png_bytes).location is None

    def test_encode_remove_gps(self, gps_jpeg_bytes):
        """Test re-encoding can strip GPS"""
        source = ImageSource.from_bytes(gps_jpeg_bytes)
        assert ImageSource.from_bytes(source.encode()).has_location
        assert not ImageSource.from_bytes(source.encode(remove_gps=True)).has_location

    def test_frame_data_remove_gps(self, gps_jpeg_bytes):
        """Test single-frame export carries or strips GPS"""
        frame = ImageSource.from_bytes(gps_jpeg_bytes).first
        assert ImageSource.from_bytes(frame.data(ImageFormat.JPEG)).has_location
        assert not ImageSource.from_bytes(frame.data(ImageFormat.JPEG, remove_gps=True)).has_location

    def test_encode_as_tiff_keeps_location(self, gps_jpeg_bytes):
        """Test a geotagged source re-encodes to TIFF with its location"""
        source = ImageSource.from_bytes(gps_jpeg_bytes)
        tiff = ImageSource.from_bytes(source.encode(ImageFormat.TIFF))
        assert tiff.format == ImageFormat.TIFF
        assert tiff.location.as_tuple() == pytest.approx((43.468365, 11.881635), abs=1e-4)

    def test_frame_data_as_tiff_keeps_location(self, gps_jpeg_bytes):
        """Test single-frame TIFF export carries GPS"""
        frame = ImageSource.from_bytes(gps_jpeg_bytes).first
        assert ImageSource.from_bytes(frame.data(ImageFormat.TIFF)).has_location


class TestOrientation:
    """Tests for orientation handling on frames"""

    def test_normalized_raster(self, rotated_jpeg_bytes):
        """Test stored pixels keep their shape and normalized pixels are upright"""
        frame = ImageSource.from_bytes(rotated_jpeg_bytes).first
        assert frame.orientation == Orientation.RIGHT
        assert frame.pixel_size == Size(width=16, height=8)
        assert frame.normalized_raster.size == Size(width=8, height=16)
        assert frame.remove_orientation() == frame.normalized_raster

    def test_up_orientation(self, png_bytes):
        """Test frames without orientation are up"""
        frame = ImageSource.from_bytes(png_bytes).first
        assert frame.orientation == Orientation.UP
        assert frame.normalized_raster == frame.raster


class TestRoundTrip:
    """Tests for building and re-encoding containers"""

    def test_tiff_multi_frame(self, split_raster):
        """Test rasters survive a multi-frame TIFF"""
        flipped = Raster(split_raster.pixels[:, ::-1], ColorSpace.RGBA)
        source = ImageSource.from_rasters([split_raster, flipped])
        assert source.format == ImageFormat.TIFF
        assert source.count == 2
        assert np.array_equal(source[1].raster.to_rgba_array(), flipped.pixels)

    def test_single_raster(self, split_raster):
        """Test the single-raster constructor"""
        source = ImageSource.from_raster(split_raster, ImageFormat.PNG)
        assert source.count == 1
        assert source.first.raster == split_raster

    def test_encode_gif_as_tiff(self, four_frame_gif_bytes):
        """Test frame count survives a format change"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        tiff = ImageSource.from_bytes(source.encode(ImageFormat.TIFF))
        assert tiff.format == ImageFormat.TIFF
        assert tiff.count == 4
        assert [_first_pixel(frame) for frame in tiff] == FRAME_COLORS

    def test_encode_gif_as_jpeg_rejected(self, four_frame_gif_bytes):
        """Test a multi-frame source cannot become a JPEG"""
        source = ImageSource.from_bytes(four_frame_gif_bytes)
        with pytest.raises(CannotCreateDestinationError):
            source.encode(ImageFormat.JPEG)

    def test_frame_data(self, four_frame_gif_bytes):
        """Test one frame can be exported on its own"""
        frame = ImageSource.from_bytes(four_frame_gif_bytes)[2]
        single = ImageSource.from_bytes(frame.data(ImageFormat.PNG))
        assert single.count == 1
        assert _first_pixel(single.first) == FRAME_COLORS[2]

    def test_thumbnail(self, split_raster):
        """Test frame thumbnails shrink to the longest side"""
        frame = ImageSource.from_raster(split_raster, ImageFormat.PNG).first
        assert max(frame.thumbnail(10).size.integral()) == 10
        assert frame.thumbnail(100).size == split_raster.size

    def test_handle(self, png_bytes):
        """Test a frame can be wrapped in a handle"""
        frame = ImageSource.from_bytes(png_bytes).first
        assert frame.handle().raster() == frame.raster
