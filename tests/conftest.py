"""
Pytest configuration and fixtures for image tools tests
"""

import io

import cv2
import numpy as np
import pytest
from PIL import Image, TiffImagePlugin

from common.enums import ColorSpace
from config import reload_settings
from core.raster import Raster


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate tests from IMGTOOLS_* environment and cached settings"""
    import os

    for key in list(os.environ):
        if key.startswith("IMGTOOLS_"):
            monkeypatch.delenv(key, raising=False)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def split_raster():
    """40x30 opaque RGBA raster: red left half, blue right half"""
    pixels = np.zeros((30, 40, 4), dtype=np.uint8)
    pixels[:, :20] = (255, 0, 0, 255)
    pixels[:, 20:] = (0, 0, 255, 255)
    return Raster(pixels, ColorSpace.RGBA)


@pytest.fixture
def marker_raster():
    """4x3 RGBA raster with a distinct color in every pixel"""
    pixels = np.zeros((3, 4, 4), dtype=np.uint8)
    for row in range(3):
        for col in range(4):
            pixels[row, col] = (row * 80, col * 60, 10 + row * 4 + col, 255)
    return Raster(pixels, ColorSpace.RGBA)


@pytest.fixture
def photo_raster():
    """64x64 RGB raster with detail (smooth shapes plus seeded noise)"""
    rng = np.random.default_rng(1234)
    image = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    cv2.circle(image, (32, 32), 20, (250, 200, 10), -1)
    cv2.rectangle(image, (4, 4), (20, 50), (10, 80, 220), -1)
    return Raster(image, ColorSpace.RGB)


@pytest.fixture
def transparent_raster():
    """20x20 RGBA raster: opaque green square in the middle, transparent border"""
    pixels = np.zeros((20, 20, 4), dtype=np.uint8)
    pixels[5:15, 5:15] = (0, 255, 0, 255)
    return Raster(pixels, ColorSpace.RGBA)


def _dms(value):
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = (minutes_full - minutes) * 60
    return (
        TiffImagePlugin.IFDRational(degrees, 1),
        TiffImagePlugin.IFDRational(minutes, 1),
        TiffImagePlugin.IFDRational(int(round(seconds * 10000)), 10000),
    )


def make_gps_jpeg(latitude=43.468365, longitude=11.881635, status="A", orientation=None):
    """JPEG bytes carrying a GPS IFD written directly with Pillow"""
    image = Image.new("RGB", (16, 8), (200, 100, 50))
    exif = Image.Exif()
    if orientation is not None:
        exif[0x0112] = orientation
    exif[0x8825] = {
        0: b"\x02\x02\x00\x00",
        1: "N" if latitude >= 0 else "S",
        2: _dms(abs(latitude)),
        3: "E" if longitude >= 0 else "W",
        4: _dms(abs(longitude)),
        9: status,
    }
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", exif=exif.tobytes(), quality=95)
    return buffer.getvalue()


@pytest.fixture
def gps_jpeg_bytes():
    return make_gps_jpeg()


@pytest.fixture
def void_gps_jpeg_bytes():
    return make_gps_jpeg(status="V")


@pytest.fixture
def four_frame_gif_bytes():
    """4-frame GIF, frame i filled with a distinct color, delays 100/200/50/300ms"""
    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]
    frames = [Image.new("RGB", (12, 10), c) for c in colors]
    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=[100, 200, 50, 300],
        loop=0,
    )
    return buffer.getvalue()


@pytest.fixture
def png_bytes(split_raster):
    buffer = io.BytesIO()
    split_raster.to_pil().save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def rotated_jpeg_bytes():
    """16x8 JPEG tagged with orientation 6 (displays as 8x16)"""
    return make_gps_jpeg(orientation=6)
