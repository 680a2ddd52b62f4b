import pytest
import requests

from georank.core.cache import TTLLocationCache
from georank.core.config import Settings
from georank.core.models import CandidateHints, Coordinates, Location
from georank.core.resolver import CoordinateResolver
from georank.vendors import google_geocoding, india_post, map_links, nominatim


def geocode_result(district, city, state, lat, lng, sub_district=None):
    components = [
        {"long_name": district, "types": ["administrative_area_level_2"]},
        {"long_name": city, "types": ["locality"]},
        {"long_name": state, "types": ["administrative_area_level_1"]},
    ]
    if sub_district:
        components.append({"long_name": sub_district, "types": ["administrative_area_level_3"]})
    return {
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "address_components": components,
        "formatted_address": f"{city}, {state}",
    }


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resolver(clock):
    settings = Settings(google_maps_api_key="key", database_url="", postal_cache_ttl=100, entity_cache_ttl=10)
    return CoordinateResolver(settings, TTLLocationCache(timer=clock))


@pytest.fixture
def calls(monkeypatch):
    recorded = {"geocode": [], "reverse": [], "india_post": [], "nominatim": [], "expand": []}

    def fake_geocode(address, api_key, country=None, timeout=10):
        recorded["geocode"].append((address, country))
        if address == "411001":
            return [geocode_result("Pune", "Pune", "Maharashtra", 18.52, 73.85)]
        if address == "Nashik, India":
            return [geocode_result("Nashik", "Nashik", "Maharashtra", 20.0, 73.78)]
        return []

    def fake_reverse(lat, lng, api_key, timeout=10):
        recorded["reverse"].append((lat, lng))
        if (lat, lng) == (12.97, 77.59):
            return [geocode_result("Bangalore Urban", "Bengaluru", "Karnataka", 12.9, 77.5)]
        return []

    def fake_lookup(pincode, timeout=10):
        recorded["india_post"].append(pincode)
        if pincode == "413512":
            return [{"Name": "Latur", "District": "Latur", "State": "Maharashtra", "Block": "Latur"}]
        return []

    def fake_search(city, country, user_agent, timeout=10):
        recorded["nominatim"].append(city)
        if city == "Hampi":
            return {"lat": "15.335", "lon": "76.46", "display_name": "Hampi, Karnataka, India"}
        return None

    def fake_expand(url, timeout=5):
        recorded["expand"].append(url)
        return url.replace("https://maps.app.goo.gl/blr", "https://www.google.com/maps/@12.97,77.59,15z")

    monkeypatch.setattr(google_geocoding, "geocode", fake_geocode)
    monkeypatch.setattr(google_geocoding, "reverse_geocode", fake_reverse)
    monkeypatch.setattr(india_post, "lookup_pincode", fake_lookup)
    monkeypatch.setattr(nominatim, "search_city", fake_search)
    monkeypatch.setattr(map_links, "expand_short_url", fake_expand)
    return recorded


def test_postal_code_resolution_is_cached_until_ttl(resolver, calls, clock):
    first = resolver.resolve_postal_code("411001")
    second = resolver.resolve_postal_code("411001")

    assert first.district == "Pune"
    assert first.coordinates == Coordinates(18.52, 73.85)
    assert second is first
    assert calls["geocode"] == [("411001", "IN")]

    clock.now = 100
    resolver.resolve_postal_code("411001")
    assert len(calls["geocode"]) == 2


def test_postal_code_falls_back_to_india_post(resolver, calls):
    location = resolver.resolve_postal_code("413512")

    assert location.district == "Latur"
    assert location.coordinates is None
    assert calls["india_post"] == ["413512"]


def test_failed_postal_code_is_not_cached(resolver, calls):
    assert resolver.resolve_postal_code("999999") is None
    assert resolver.resolve_postal_code("999999") is None
    assert calls["india_post"] == ["999999", "999999"]


def test_provider_errors_become_none(resolver, monkeypatch):
    def broken_geocode(*args, **kwargs):
        raise requests.ConnectionError("network down")

    def broken_lookup(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(google_geocoding, "geocode", broken_geocode)
    monkeypatch.setattr(india_post, "lookup_pincode", broken_lookup)

    assert resolver.resolve_postal_code("411001") is None


def test_geocoding_error_status_falls_through(resolver, calls, monkeypatch):
    def denied(*args, **kwargs):
        raise google_geocoding.GeocodingError("REQUEST_DENIED")

    monkeypatch.setattr(google_geocoding, "geocode", denied)
    assert resolver.resolve_postal_code("413512").district == "Latur"


def test_map_url_uses_coordinates_without_forward_geocoding(resolver, calls):
    location = resolver.resolve_map_url("https://www.google.com/maps/@12.97,77.59,15z")

    assert location.coordinates == Coordinates(12.97, 77.59)
    assert location.city == "Bengaluru"
    assert calls["geocode"] == []
    assert calls["reverse"] == [(12.97, 77.59)]


def test_short_map_url_is_expanded(resolver, calls):
    location = resolver.resolve_map_url("https://maps.app.goo.gl/blr")
    assert location.coordinates == Coordinates(12.97, 77.59)
    assert calls["expand"] == ["https://maps.app.goo.gl/blr"]


def test_map_url_without_reverse_data_keeps_coordinates(resolver, calls):
    location = resolver.resolve_map_url("https://maps.google.com/?q=10.5,76.2")
    assert location == Location(coordinates=Coordinates(10.5, 76.2))


def test_unparseable_map_url_fails(resolver, calls):
    assert resolver.resolve_map_url("https://www.google.com/maps/place/Some+Shop") is None


def test_city_resolution_google_then_nominatim(resolver, calls):
    nashik = resolver.resolve_city("Nashik")
    hampi = resolver.resolve_city("Hampi")

    assert nashik.district == "Nashik"
    assert hampi.coordinates == Coordinates(15.335, 76.46)
    assert hampi.city == "Hampi"
    assert calls["nominatim"] == ["Hampi"]
    assert calls["reverse"] == [(15.335, 76.46)]


def test_candidate_hint_priority_prefers_map_url(resolver, calls):
    hints = CandidateHints(
        entity_key="listing:1",
        map_url="https://www.google.com/maps/@12.97,77.59,15z",
        postal_code="411001",
    )
    location = resolver.resolve_candidate(hints)
    assert location.city == "Bengaluru"
    assert calls["geocode"] == []


def test_candidate_coordinates_only_link_defers_to_postal_code(resolver, calls):
    hints = CandidateHints(map_url="https://maps.google.com/?q=10.5,76.2", postal_code="411001")
    assert resolver.resolve_candidate(hints).district == "Pune"


def test_candidate_falls_back_to_city_name(resolver, calls):
    hints = CandidateHints(postal_code="999999", city_name="Nashik")
    assert resolver.resolve_candidate(hints).district == "Nashik"


def test_candidate_entity_cache_expires_separately(resolver, calls, clock):
    hints = CandidateHints(entity_key="bottom:5", postal_code="411001")
    resolver.resolve_candidate(hints)
    resolver._cache.set("postal:411001", Location(district="Changed"), ttl=1000)

    assert resolver.resolve_candidate(hints).district == "Pune"

    clock.now = 10
    assert resolver.resolve_candidate(hints).district == "Changed"


def test_resolve_dispatches_by_kind(resolver, calls):
    assert resolver.resolve("postal", "411001").district == "Pune"
    assert resolver.resolve("city", "Nashik").district == "Nashik"
    with pytest.raises(ValueError):
        resolver.resolve("planet", "Mars")


def test_describe_map_link(resolver, calls):
    details = resolver.describe_map_link("https://www.google.com/maps/@12.97,77.59,15z")

    assert details["coordinates"] == {"lat": 12.97, "lng": 77.59}
    assert details["address"] == "Bengaluru, Karnataka"
    assert details["staticMapUrl"].startswith("https://maps.googleapis.com/maps/api/staticmap?")


def test_describe_map_link_without_address(resolver, calls):
    details = resolver.describe_map_link("https://maps.google.com/?q=10.5,76.2")
    assert details["address"] == "Near 10.5, 76.2"
    assert details["name"] == "Location"
    assert resolver.describe_map_link("https://example.com/nowhere") is None


@pytest.fixture
def flaky_reverse(calls, monkeypatch):
    state = {"fail": True}

    def reverse(lat, lng, api_key, timeout=10):
        calls["reverse"].append((lat, lng))
        if state["fail"]:
            raise requests.ConnectionError("network down")
        return [geocode_result("Bangalore Urban", "Bengaluru", "Karnataka", 12.9, 77.5)]

    monkeypatch.setattr(google_geocoding, "reverse_geocode", reverse)
    return state


def test_map_url_reverse_failure_is_not_cached(resolver, calls, flaky_reverse):
    url = "https://www.google.com/maps/@12.97,77.59,15z"

    first = resolver.resolve_map_url(url)
    flaky_reverse["fail"] = False
    second = resolver.resolve_map_url(url)

    assert first == Location(coordinates=Coordinates(12.97, 77.59))
    assert second.district == "Bangalore Urban"
    assert len(calls["reverse"]) == 2


def test_candidate_entity_cache_skips_coordinates_only_result(resolver, calls, flaky_reverse):
    hints = CandidateHints(entity_key="hero:4", map_url="https://www.google.com/maps/@12.97,77.59,15z")

    assert resolver.resolve_candidate(hints).has_admin_detail is False
    flaky_reverse["fail"] = False
    assert resolver.resolve_candidate(hints).state == "Karnataka"


def test_malformed_geocode_payload_is_no_data(resolver, calls, monkeypatch):
    def junk_geocode(address, api_key, country=None, timeout=10):
        calls["geocode"].append((address, country))
        return [{"address_components": ["junk"], "geometry": "bad"}, "junk"]

    monkeypatch.setattr(google_geocoding, "geocode", junk_geocode)
    monkeypatch.setattr(india_post, "lookup_pincode", lambda pincode, timeout=10: ["junk"])

    assert resolver.resolve_postal_code("411001") is None
    assert resolver.resolve_postal_code("411001") is None
    assert len(calls["geocode"]) == 2
