"""Tests for place and device-location resolution."""
import pytest
from geopy.exc import GeocoderTimedOut

from src.models import GeoPoint
from src.utils import geocoding
from src.utils.directory_client import DirectoryApiError
from src.utils.geocoding import GeocodingError, GeolocationDeniedError, point_from_geolocation, resolve_place


class FakeClient:
    def __init__(self, point=None, error=None):
        self.point = point
        self.error = error
        self.places = []

    def geocode_place(self, place):
        self.places.append(place)
        if self.error is not None:
            raise self.error
        return self.point


@pytest.fixture
def use_nominatim(monkeypatch):
    def mock_get_api_config(api_name):
        return {"provider": "nominatim"} if api_name == "geocoding" else {}

    monkeypatch.setattr(geocoding, "get_api_config", mock_get_api_config)


class TestResolvePlace:
    def test_directory_geocoder_is_the_default(self):
        client = FakeClient(point=GeoPoint(lat=25.1, lng=55.2))

        assert resolve_place("  Al Barsha ", client) == GeoPoint(lat=25.1, lng=55.2)
        assert client.places == ["Al Barsha"]

    def test_blank_place_is_rejected(self):
        with pytest.raises(GeocodingError):
            resolve_place("   ", FakeClient())

    def test_directory_failure_is_wrapped(self):
        client = FakeClient(error=DirectoryApiError("connection refused"))
        with pytest.raises(GeocodingError, match="Network Error"):
            resolve_place("Al Barsha", client)

    def test_out_of_range_coordinates_are_rejected(self):
        client = FakeClient(point=GeoPoint(lat=123.0, lng=55.2))
        with pytest.raises(GeocodingError):
            resolve_place("Nowhere", client)

    def test_nominatim_provider(self, use_nominatim, monkeypatch):
        monkeypatch.setattr(geocoding, "geocode_with_nominatim", lambda place: (24.45, 54.37))
        assert resolve_place("Abu Dhabi") == GeoPoint(lat=24.45, lng=54.37)

    def test_nominatim_no_match(self, use_nominatim, monkeypatch):
        monkeypatch.setattr(geocoding, "geocode_with_nominatim", lambda place: None)
        with pytest.raises(GeocodingError, match="No location found"):
            resolve_place("Qwertyuiop")

    def test_nominatim_timeout(self, use_nominatim, monkeypatch):
        def timed_out(place):
            raise GeocoderTimedOut("timed out")

        monkeypatch.setattr(geocoding, "geocode_with_nominatim", timed_out)
        with pytest.raises(GeocodingError, match="Timeout"):
            resolve_place("Abu Dhabi")


class TestPointFromGeolocation:
    def test_success_payload(self):
        payload = {"coords": {"latitude": 25.2048, "longitude": 55.2708, "accuracy": 20}}
        assert point_from_geolocation(payload) == GeoPoint(lat=25.2048, lng=55.2708)

    def test_permission_denied(self):
        with pytest.raises(GeolocationDeniedError, match="Geolocation permission denied"):
            point_from_geolocation({"code": 1, "message": "User denied Geolocation"})

    def test_denial_is_a_geocoding_error(self):
        assert issubclass(GeolocationDeniedError, GeocodingError)

    def test_timeout_and_unavailable(self):
        with pytest.raises(GeocodingError, match="Timed out"):
            point_from_geolocation({"code": 3})
        with pytest.raises(GeocodingError, match="Position unavailable"):
            point_from_geolocation({"code": 2, "message": "Position unavailable"})

    @pytest.mark.parametrize("payload", [{}, None, {"coords": {"latitude": 1}}, {"coords": None}])
    def test_incomplete_payloads(self, payload):
        with pytest.raises(GeocodingError):
            point_from_geolocation(payload)


def test_handle_geocoding_error_messages():
    assert "Rate Limited" in geocoding.handle_geocoding_error("x", RuntimeError("rate limit exceeded"))
    assert "Unable to find location for 'x'" in geocoding.handle_geocoding_error("x", ValueError("weird"))
