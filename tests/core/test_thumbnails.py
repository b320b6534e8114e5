"""
Unit tests for background file thumbnails
"""

import threading

import numpy as np

from common.base import Size
from core.thumbnails import FileThumbnail


def _wait(future):
    return future.result(timeout=30)


class TestFileThumbnail:
    """Tests for FileThumbnail.generate"""

    def test_shrinks_to_fit(self, tmp_path, png_bytes):
        """Test the thumbnail fits the requested size keeping aspect"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(16)))

        assert thumbnail is not None
        assert thumbnail.thumbnail.size == Size(width=16, height=12)

    def test_scale_multiplies_size(self, tmp_path, png_bytes):
        """Test scale converts points to pixels"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(10), scale=2.0))

        assert thumbnail.thumbnail.width == 20

    def test_never_upscales(self, tmp_path, png_bytes):
        """Test small images keep their size"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(500)))

        assert thumbnail.thumbnail.size == Size(width=40, height=30)

    def test_icon_is_square(self, tmp_path, png_bytes):
        """Test icon mode letterboxes into a square canvas"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(16), icon=True))

        assert thumbnail.thumbnail.size == Size(width=16, height=16)
        assert thumbnail.thumbnail.pixels[0, 8, 3] == 0

    def test_icon_never_upscales(self, tmp_path, png_bytes, split_raster):
        """Test icon mode centres small images at their own size"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(64), icon=True)).thumbnail

        assert thumbnail.size == Size(width=64, height=64)
        assert np.array_equal(thumbnail.pixels[17:47, 12:52], split_raster.pixels)
        assert thumbnail.pixels[16, 12, 3] == 0
        assert thumbnail.pixels[17, 11, 3] == 0
        assert thumbnail.pixels[47, 51, 3] == 0

    def test_orientation_applied(self, tmp_path, rotated_jpeg_bytes):
        """Test EXIF orientation is honoured"""
        path = tmp_path / "rotated.jpg"
        path.write_bytes(rotated_jpeg_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(64)))

        assert thumbnail.thumbnail.size == Size(width=8, height=16)

    def test_completion_called_once(self, tmp_path, png_bytes):
        """Test completion receives the same thumbnail the future returns"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)
        calls = []
        done = threading.Event()

        def completion(result):
            calls.append(result)
            done.set()

        result = _wait(FileThumbnail.generate(path, Size.square(16), completion=completion))

        assert done.wait(timeout=30)
        assert calls == [result]

    def test_unreadable_file_gives_none(self, tmp_path):
        """Test a non-image file completes with None"""
        path = tmp_path / "notes.txt"
        path.write_text("not an image")
        calls = []

        result = _wait(FileThumbnail.generate(path, completion=calls.append))

        assert result is None
        assert calls == [None]

    def test_missing_file_gives_none(self, tmp_path):
        """Test a missing file completes with None"""
        assert _wait(FileThumbnail.generate(tmp_path / "missing.png")) is None

    def test_handle(self, tmp_path, png_bytes):
        """Test the thumbnail can be wrapped in a handle"""
        path = tmp_path / "split.png"
        path.write_bytes(png_bytes)

        thumbnail = _wait(FileThumbnail.generate(path, Size.square(16)))

        assert thumbnail.handle().size() == Size(width=16, height=12)
