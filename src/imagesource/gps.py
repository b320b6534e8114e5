"""
GPS coordinate models.

A GPSCoordinate is a value plus hemisphere reference ("N"/"S" for latitude,
"E"/"W" for longitude). Values read from EXIF are unsigned with the sign
carried by the reference; `normalized` folds the sign into the value.
"""

import re
from typing import Tuple

from pydantic import BaseModel, ConfigDict

from common.constants import GPSConstants

_DMS_PATTERN = re.compile(
    r"^\s*(?P<degrees>\d+)\s*°\s*(?P<minutes>\d+)\s*[′']\s*(?P<seconds>\d+(?:\.\d+)?)\s*[\"″]\s*(?P<ref>[NSEW])\s*$"
)


def _format_fraction(value: float) -> str:
    """Up to DMS_FRACTION_DIGITS decimals, trailing zeros dropped."""
    text = f"{value:.{GPSConstants.DMS_FRACTION_DIGITS}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


class GPSCoordinate(BaseModel):
    """A single latitude or longitude with its hemisphere reference."""

    model_config = ConfigDict(frozen=True)

    value: float
    reference: str

    @classmethod
    def from_decimal(cls, value: float, is_latitude: bool) -> "GPSCoordinate":
        """Signed decimal degrees to an unsigned value with a reference."""
        if is_latitude:
            reference = GPSConstants.SOUTH if value < 0 else GPSConstants.NORTH
        else:
            reference = GPSConstants.WEST if value < 0 else GPSConstants.EAST
        return cls(value=abs(value), reference=reference)

    @classmethod
    def parse_dms(cls, text: str) -> "GPSCoordinate":
        """
        Parse a `dms_string` back into a coordinate.

        Raises:
            ValueError: If the text is not a degree/minute/second string
        """
        match = _DMS_PATTERN.match(text)
        if match is None:
            raise ValueError(f"Not a DMS coordinate: {text!r}")
        value = (
            int(match["degrees"])
            + int(match["minutes"]) / 60.0
            + float(match["seconds"]) / 3600.0
        )
        return cls(value=value, reference=match["ref"])

    @property
    def is_latitude(self) -> bool:
        return self.reference in (GPSConstants.NORTH, GPSConstants.SOUTH)

    @property
    def normalized(self) -> "GPSCoordinate":
        """The coordinate referenced to N or E, negated for S or W."""
        if self.reference == GPSConstants.SOUTH:
            return GPSCoordinate(value=-self.value, reference=GPSConstants.NORTH)
        if self.reference == GPSConstants.WEST:
            return GPSCoordinate(value=-self.value, reference=GPSConstants.EAST)
        return self

    @property
    def signed_value(self) -> float:
        return self.normalized.value

    @property
    def degrees(self) -> int:
        return int(abs(self.value))

    @property
    def minutes(self) -> int:
        return int((abs(self.value) % 1) * 60.0)

    @property
    def seconds(self) -> float:
        return (((abs(self.value) % 1) * 60.0) % 1) * 60.0

    @property
    def dms_string(self) -> str:
        """For example `43° 28′ 6.114" N`."""
        return f'{self.degrees}° {self.minutes}′ {_format_fraction(self.seconds)}" {self.reference}'

    @property
    def string_value(self) -> str:
        return f"{_format_fraction(self.value)} {self.reference}"

    def __str__(self) -> str:
        return f"{self.value} {self.reference}"


class GPSCoordinates(BaseModel):
    """A latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    latitude: GPSCoordinate
    longitude: GPSCoordinate

    @classmethod
    def from_decimal(cls, latitude: float, longitude: float) -> "GPSCoordinates":
        return cls(
            latitude=GPSCoordinate.from_decimal(latitude, is_latitude=True),
            longitude=GPSCoordinate.from_decimal(longitude, is_latitude=False),
        )

    @classmethod
    def parse_dms(cls, text: str) -> "GPSCoordinates":
        """
        Parse `"<latitude dms>, <longitude dms>"`.

        Raises:
            ValueError: If either half cannot be parsed
        """
        parts = text.split(",")
        if len(parts) != 2:
            raise ValueError(f"Not a DMS coordinate pair: {text!r}")
        return cls(
            latitude=GPSCoordinate.parse_dms(parts[0]),
            longitude=GPSCoordinate.parse_dms(parts[1]),
        )

    @property
    def normalized(self) -> "GPSCoordinates":
        return GPSCoordinates(
            latitude=self.latitude.normalized, longitude=self.longitude.normalized
        )

    def as_tuple(self) -> Tuple[float, float]:
        """Signed decimal (latitude, longitude)."""
        return (self.latitude.signed_value, self.longitude.signed_value)

    @property
    def latitude_dms(self) -> str:
        return self.latitude.dms_string

    @property
    def longitude_dms(self) -> str:
        return self.longitude.dms_string

    @property
    def dms_string(self) -> str:
        return f"{self.latitude.dms_string}, {self.longitude.dms_string}"

    @property
    def string_value(self) -> str:
        return f"{self.latitude.string_value}, {self.longitude.string_value}"

    def __str__(self) -> str:
        return f"GPSCoordinates: {self.latitude}, {self.longitude}"
