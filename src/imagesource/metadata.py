"""
Per-frame metadata models.

FrameProperties is read from a decoded Pillow frame and can be written back
through the codec as a property dictionary (see to_dict()).
"""

import logging
from typing import Any, Dict, Optional

from PIL import ExifTags, Image
from pydantic import BaseModel, Field

from common.constants import ExifTagIds, GPSConstants, ImageConstants, PropertyKeys
from common.enums import Orientation
from imagesource.gps import GPSCoordinate, GPSCoordinates

logger = logging.getLogger(__name__)

# Info keys turned into model fields rather than kept in `extra`
_CONSUMED_INFO_KEYS = {"dpi", "exif", "duration", "loop", "icc_profile", "transparency", "background"}


def _plain(value: Any) -> Any:
    """EXIF value as plain Python data (rationals to float, bytes to str)."""
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("ascii", errors="replace").rstrip("\x00")
    if hasattr(value, "numerator") and hasattr(value, "denominator") and not isinstance(value, int):
        try:
            return float(value)
        except ZeroDivisionError:
            return 0.0
    return value


def _dms_to_decimal(dms: Any) -> Optional[float]:
    try:
        degrees, minutes, seconds = (float(v) for v in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return degrees + minutes / 60.0 + seconds / 3600.0


def _named(tags: Dict[int, Any], names: Dict[int, str]) -> Dict[str, Any]:
    return {names.get(tag, str(tag)): _plain(value) for tag, value in tags.items()}


class GPSProperties(BaseModel):
    """GPS sub-dictionary. Latitude and longitude are unsigned decimal degrees."""

    latitude: Optional[float] = None
    latitude_ref: Optional[str] = None
    longitude: Optional[float] = None
    longitude_ref: Optional[str] = None
    altitude: Optional[float] = None
    altitude_ref: Optional[int] = None
    status: Optional[str] = None

    @classmethod
    def from_ifd(cls, ifd: Dict[int, Any]) -> Optional["GPSProperties"]:
        """Parse an EXIF GPS IFD; None when it is empty."""
        if not ifd:
            return None

        altitude_ref = ifd.get(ExifTagIds.GPS_ALTITUDE_REF)
        if isinstance(altitude_ref, bytes):
            altitude_ref = altitude_ref[0] if altitude_ref else None

        altitude = ifd.get(ExifTagIds.GPS_ALTITUDE)
        if altitude is not None:
            try:
                altitude = float(altitude)
            except (TypeError, ValueError, ZeroDivisionError):
                altitude = None

        return cls(
            latitude=_dms_to_decimal(ifd.get(ExifTagIds.GPS_LATITUDE)),
            latitude_ref=_plain(ifd.get(ExifTagIds.GPS_LATITUDE_REF)),
            longitude=_dms_to_decimal(ifd.get(ExifTagIds.GPS_LONGITUDE)),
            longitude_ref=_plain(ifd.get(ExifTagIds.GPS_LONGITUDE_REF)),
            altitude=altitude,
            altitude_ref=altitude_ref,
            status=_plain(ifd.get(ExifTagIds.GPS_STATUS)),
        )

    @classmethod
    def from_coordinates(
        cls, coordinates: GPSCoordinates, altitude: Optional[float] = None
    ) -> "GPSProperties":
        lat = coordinates.latitude
        lon = coordinates.longitude
        return cls(
            latitude=abs(lat.value),
            latitude_ref=lat.reference,
            longitude=abs(lon.value),
            longitude_ref=lon.reference,
            altitude=None if altitude is None else abs(altitude),
            altitude_ref=None if altitude is None else int(altitude < 0),
            status=GPSConstants.STATUS_ACTIVE,
        )

    @property
    def is_void(self) -> bool:
        return self.status == GPSConstants.STATUS_VOID

    def coordinates(self) -> Optional[GPSCoordinates]:
        """Coordinates when all four fields are present and the fix is not void."""
        if self.is_void:
            return None
        if None in (self.latitude, self.latitude_ref, self.longitude, self.longitude_ref):
            return None
        return GPSCoordinates(
            latitude=GPSCoordinate(value=self.latitude, reference=self.latitude_ref),
            longitude=GPSCoordinate(value=self.longitude, reference=self.longitude_ref),
        )

    def to_dict(self) -> Dict[str, Any]:
        values = {
            PropertyKeys.GPS_LATITUDE: self.latitude,
            PropertyKeys.GPS_LATITUDE_REF: self.latitude_ref,
            PropertyKeys.GPS_LONGITUDE: self.longitude,
            PropertyKeys.GPS_LONGITUDE_REF: self.longitude_ref,
            PropertyKeys.GPS_ALTITUDE: self.altitude,
            PropertyKeys.GPS_ALTITUDE_REF: self.altitude_ref,
            PropertyKeys.GPS_STATUS: self.status,
        }
        return {k: v for k, v in values.items() if v is not None}


class GIFProperties(BaseModel):
    """GIF sub-dictionary, times in seconds."""

    delay_time: float = ImageConstants.GIF_DEFAULT_DELAY
    unclamped_delay_time: float = ImageConstants.GIF_DEFAULT_DELAY
    loop_count: Optional[int] = None

    @classmethod
    def from_info(cls, info: Dict[str, Any], minimum_delay: float) -> "GIFProperties":
        duration = info.get("duration")
        unclamped = duration / 1000.0 if duration is not None else ImageConstants.GIF_DEFAULT_DELAY
        return cls(
            delay_time=max(unclamped, minimum_delay),
            unclamped_delay_time=unclamped,
            loop_count=info.get("loop"),
        )

    def to_dict(self) -> Dict[str, Any]:
        values = {
            PropertyKeys.GIF_DELAY_TIME: self.delay_time,
            PropertyKeys.GIF_UNCLAMPED_DELAY_TIME: self.unclamped_delay_time,
            PropertyKeys.GIF_LOOP_COUNT: self.loop_count,
        }
        return {k: v for k, v in values.items() if v is not None}


class FrameProperties(BaseModel):
    """Properties of one frame of an image container."""

    pixel_width: int = 0
    pixel_height: int = 0
    orientation: Orientation = Orientation.UP
    dpi_width: float = ImageConstants.DEFAULT_DPI
    dpi_height: float = ImageConstants.DEFAULT_DPI
    exif: Dict[str, Any] = Field(default_factory=dict)
    tiff: Dict[str, Any] = Field(default_factory=dict)
    heic: Dict[str, Any] = Field(default_factory=dict)
    gps: Optional[GPSProperties] = None
    gif: Optional[GIFProperties] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_pil(
        cls,
        image: Image.Image,
        minimum_gif_delay: float = ImageConstants.GIF_MINIMUM_DELAY,
        default_dpi: float = ImageConstants.DEFAULT_DPI,
    ) -> "FrameProperties":
        """
        Read the properties of the frame `image` is currently positioned on.

        Args:
            image: Decoded Pillow image (seeked to the frame)
            minimum_gif_delay: Lower clamp for the GIF delay time, in seconds
            default_dpi: Resolution reported when the file has none
        """
        exif = image.getexif()

        orientation = Orientation.UP
        raw_orientation = exif.get(ExifTagIds.ORIENTATION)
        if raw_orientation is not None:
            try:
                orientation = Orientation(int(raw_orientation))
            except ValueError:
                logger.debug(f"Ignoring invalid orientation {raw_orientation!r}")

        dpi = image.info.get("dpi")
        try:
            dpi_width, dpi_height = (float(v) for v in dpi) if dpi else (default_dpi, default_dpi)
        except (TypeError, ValueError):
            dpi_width = dpi_height = default_dpi
        if dpi_width <= 0 or dpi_height <= 0:
            dpi_width = dpi_height = default_dpi

        tiff_tags = {
            tag: value
            for tag, value in exif.items()
            if tag not in (ExifTagIds.EXIF_IFD, ExifTagIds.GPS_IFD)
        }
        exif_ifd = exif.get_ifd(ExifTagIds.EXIF_IFD)
        gps = GPSProperties.from_ifd(exif.get_ifd(ExifTagIds.GPS_IFD))

        gif = None
        if image.format == "GIF":
            gif = GIFProperties.from_info(image.info, minimum_gif_delay)

        heic = {}
        if image.format == "HEIF":
            heic = {k: _plain(v) for k, v in image.info.items() if k not in _CONSUMED_INFO_KEYS}

        extra = {
            k: _plain(v)
            for k, v in image.info.items()
            if k not in _CONSUMED_INFO_KEYS and isinstance(v, (str, int, float, bool, tuple))
        }

        return cls(
            pixel_width=image.width,
            pixel_height=image.height,
            orientation=orientation,
            dpi_width=dpi_width,
            dpi_height=dpi_height,
            exif=_named(exif_ifd, ExifTags.TAGS),
            tiff=_named(tiff_tags, ExifTags.TAGS),
            heic=heic,
            gps=gps,
            gif=gif,
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Property dictionary keyed by PropertyKeys, as accepted by the codec."""
        result: Dict[str, Any] = {
            PropertyKeys.PIXEL_WIDTH: self.pixel_width,
            PropertyKeys.PIXEL_HEIGHT: self.pixel_height,
            PropertyKeys.ORIENTATION: int(self.orientation),
            PropertyKeys.DPI_WIDTH: self.dpi_width,
            PropertyKeys.DPI_HEIGHT: self.dpi_height,
        }
        if self.exif:
            result[PropertyKeys.EXIF] = dict(self.exif)
        if self.tiff:
            result[PropertyKeys.TIFF] = dict(self.tiff)
        if self.heic:
            result[PropertyKeys.HEIC] = dict(self.heic)
        if self.gps is not None:
            result[PropertyKeys.GPS] = self.gps.to_dict()
        if self.gif is not None:
            result[PropertyKeys.GIF] = self.gif.to_dict()
        result.update(self.extra)
        return result
