"""Tests for geofence helpers."""

import pytest
from app.core.config import GeofenceRegion
from app.helpers.errors import InvalidParameterError
from app.helpers.geofence import classify_location, distance_metres, in_geofence, parse_coordinate

HOME = GeofenceRegion(name="home", latitude=51.4447, longitude=0.0345, radius_metres=250)
WORK = GeofenceRegion(name="work", latitude=51.5077, longitude=-0.1277, radius_metres=250)


class TestParseCoordinate:
    """Tests for coordinate parsing."""

    @pytest.mark.parametrize(("value", "expected"), [("51.4447", 51.4447), (51.4447, 51.4447), ("-0.1", -0.1)])
    def test_accepts_numbers_and_numeric_strings(self, value: str | float, expected: float) -> None:
        assert parse_coordinate(value, "lat") == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["north", "", None, "nan"])
    def test_rejects_non_numeric(self, value: str | None) -> None:
        with pytest.raises(InvalidParameterError):
            parse_coordinate(value, "lat")

    def test_latitude_range(self) -> None:
        with pytest.raises(InvalidParameterError):
            parse_coordinate("91", "lat")

    def test_longitude_range(self) -> None:
        """Test that longitudes up to 180 are valid but not beyond."""
        assert parse_coordinate("179.5", "long") == pytest.approx(179.5)
        with pytest.raises(InvalidParameterError):
            parse_coordinate("180.5", "long")


class TestDistance:
    """Tests for haversine distance."""

    def test_same_point_is_zero(self) -> None:
        assert distance_metres(51.5, -0.12, 51.5, -0.12) == 0

    def test_known_distance(self) -> None:
        """Test Westminster Bridge to Charing Cross is roughly 450 metres."""
        assert round(distance_metres(51.5007, -0.1246, 51.5033, -0.1196)) == 451

    def test_distance_is_symmetric(self) -> None:
        forward = distance_metres(HOME.latitude, HOME.longitude, WORK.latitude, WORK.longitude)
        backward = distance_metres(WORK.latitude, WORK.longitude, HOME.latitude, HOME.longitude)
        assert forward == pytest.approx(backward)


class TestInGeofence:
    """Tests for region membership."""

    def test_centre_is_inside(self) -> None:
        assert in_geofence(HOME.latitude, HOME.longitude, HOME)

    def test_point_just_outside_radius(self) -> None:
        """Test a point about 330 metres north of a 250 metre fence is outside."""
        assert not in_geofence(HOME.latitude + 0.003, HOME.longitude, HOME)

    def test_point_inside_radius(self) -> None:
        """Test a point about 110 metres north is inside."""
        assert in_geofence(HOME.latitude + 0.001, HOME.longitude, HOME)

    def test_classify_location(self) -> None:
        result = classify_location(WORK.latitude, WORK.longitude, [HOME, WORK])
        assert result == {"home": False, "work": True}
