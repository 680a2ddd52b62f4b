import pytest

from georank.vendors import india_post, nominatim


class DummyResponse:
    def __init__(self, payload, status_code=200):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError("http error")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return self.response


def test_nominatim_search_city_returns_first_match(monkeypatch):
    session = DummySession(DummyResponse([{"lat": "18.52", "lon": "73.85", "display_name": "Pune, Maharashtra, India"}]))
    monkeypatch.setattr(nominatim, "_SESSION", session)

    result = nominatim.search_city("Pune", "India", "TestAgent/1.0")

    assert result["lat"] == "18.52"
    call = session.calls[0]
    assert call["params"] == {"city": "Pune", "country": "India", "format": "json", "limit": 1}
    assert call["headers"] == {"User-Agent": "TestAgent/1.0"}


def test_nominatim_no_match(monkeypatch):
    monkeypatch.setattr(nominatim, "_SESSION", DummySession(DummyResponse([])))
    assert nominatim.search_city("Atlantis", "India", "ua") is None


def test_nominatim_unexpected_payload(monkeypatch):
    monkeypatch.setattr(nominatim, "_SESSION", DummySession(DummyResponse({"error": "rate limited"})))
    with pytest.raises(nominatim.NominatimError):
        nominatim.search_city("Pune", "India", "ua")


def test_india_post_lookup_success(monkeypatch):
    offices = [{"Name": "Shivajinagar", "District": "Pune", "State": "Maharashtra", "Block": "Pune City"}]
    session = DummySession(DummyResponse([{"Status": "Success", "PostOffice": offices}]))
    monkeypatch.setattr(india_post, "_SESSION", session)

    assert india_post.lookup_pincode("411005") == offices
    assert session.calls[0]["url"].endswith("/pincode/411005")


def test_india_post_lookup_error_status(monkeypatch):
    payload = [{"Status": "Error", "Message": "No records found", "PostOffice": None}]
    monkeypatch.setattr(india_post, "_SESSION", DummySession(DummyResponse(payload)))
    assert india_post.lookup_pincode("999999") == []


def test_india_post_lookup_unexpected_payload(monkeypatch):
    monkeypatch.setattr(india_post, "_SESSION", DummySession(DummyResponse({})))
    with pytest.raises(india_post.PostalLookupError):
        india_post.lookup_pincode("411005")
