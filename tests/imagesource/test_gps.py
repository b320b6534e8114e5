"""
Unit tests for GPS coordinate models
"""

import pytest

from imagesource.gps import GPSCoordinate, GPSCoordinates


class TestGPSCoordinate:
    """Tests for a single coordinate"""

    def test_from_decimal_negative(self):
        """Test negative decimals become unsigned values with S or W"""
        latitude = GPSCoordinate.from_decimal(-33.5, is_latitude=True)
        longitude = GPSCoordinate.from_decimal(-70.25, is_latitude=False)
        assert (latitude.value, latitude.reference) == (33.5, "S")
        assert (longitude.value, longitude.reference) == (70.25, "W")

    def test_normalized(self):
        """Test normalization folds the hemisphere into the sign"""
        south = GPSCoordinate(value=33.5, reference="S").normalized
        assert (south.value, south.reference) == (-33.5, "N")
        east = GPSCoordinate(value=11.0, reference="E")
        assert east.normalized == east
        assert GPSCoordinate(value=70.25, reference="W").signed_value == -70.25

    def test_is_latitude(self):
        """Test the reference decides the axis"""
        assert GPSCoordinate(value=1, reference="N").is_latitude
        assert not GPSCoordinate(value=1, reference="E").is_latitude

    def test_dms_components(self):
        """Test degrees, minutes and seconds"""
        coordinate = GPSCoordinate(value=43.468365, reference="N")
        assert coordinate.degrees == 43
        assert coordinate.minutes == 28
        assert coordinate.seconds == pytest.approx(6.114, abs=1e-6)

    def test_dms_string(self):
        """Test the degree/minute/second rendering"""
        assert GPSCoordinate(value=43.468365, reference="N").dms_string == '43° 28′ 6.114" N'
        assert GPSCoordinate(value=11.881635, reference="E").dms_string == '11° 52′ 53.886" E'
        assert GPSCoordinate(value=10.5, reference="S").dms_string == '10° 30′ 0" S'

    def test_string_value(self):
        """Test the decimal rendering"""
        assert GPSCoordinate(value=43.468365, reference="N").string_value == "43.468 N"
        assert GPSCoordinate(value=12.5, reference="W").string_value == "12.5 W"

    def test_parse_dms_round_trip(self):
        """Test parsing the rendered string gives back the value"""
        for value, reference in [(43.468365, "N"), (11.881635, "E"), (0.0001, "S"), (179.99, "W")]:
            coordinate = GPSCoordinate(value=value, reference=reference)
            parsed = GPSCoordinate.parse_dms(coordinate.dms_string)
            assert parsed.reference == reference
            assert parsed.value == pytest.approx(value, abs=1e-4)

    def test_parse_dms_ascii_marks(self):
        """Test plain apostrophes are accepted for minutes"""
        parsed = GPSCoordinate.parse_dms("10° 30' 0\" S")
        assert parsed.value == pytest.approx(10.5)

    @pytest.mark.parametrize("text", ["", "43.468 N", "43° 28′ 6.114\"", "43° 28′ 6.114\" Q"])
    def test_parse_dms_invalid(self, text):
        """Test malformed strings raise ValueError"""
        with pytest.raises(ValueError):
            GPSCoordinate.parse_dms(text)


class TestGPSCoordinates:
    """Tests for latitude/longitude pairs"""

    def test_from_decimal(self):
        """Test signed decimals keep their sign through as_tuple"""
        coordinates = GPSCoordinates.from_decimal(-33.5, 151.25)
        assert coordinates.latitude.reference == "S"
        assert coordinates.longitude.reference == "E"
        assert coordinates.as_tuple() == (-33.5, 151.25)

    def test_dms_string_round_trip(self):
        """Test the pair rendering parses back"""
        coordinates = GPSCoordinates.from_decimal(43.468365, 11.881635)
        assert coordinates.dms_string == '43° 28′ 6.114" N, 11° 52′ 53.886" E'
        parsed = GPSCoordinates.parse_dms(coordinates.dms_string)
        assert parsed.as_tuple() == pytest.approx((43.468365, 11.881635), abs=1e-4)

    def test_parse_dms_needs_two_parts(self):
        """Test a single coordinate is not a pair"""
        with pytest.raises(ValueError):
            GPSCoordinates.parse_dms('43° 28′ 6.114" N')

    def test_normalized(self):
        """Test both halves are normalized"""
        normalized = GPSCoordinates.from_decimal(-1.5, -2.5).normalized
        assert normalized.latitude.reference == "N"
        assert normalized.longitude.reference == "E"
        assert (normalized.latitude.value, normalized.longitude.value) == (-1.5, -2.5)

    def test_string_value(self):
        """Test the decimal pair rendering"""
        assert GPSCoordinates.from_decimal(1.5, -2.25).string_value == "1.5 N, 2.25 W"
