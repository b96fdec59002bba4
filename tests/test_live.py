import pytest
import requests

from aqi_dashboard import config, live


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")


OPENWEATHER_CURRENT = {
    "coord": {"lat": 19.07, "lon": 72.87},
    "name": "Mumbai",
    "main": {"temp": 28.6, "humidity": 60},
    "wind": {"speed": 3},
    "weather": [{"icon": "02d"}],
}

IQAIR_OK = {
    "status": "success",
    "data": {
        "city": "New Delhi",
        "current": {
            "pollution": {"aqius": 612, "ts": "2026-01-01T00:00:00.000Z"},
            "weather": {"tp": 30, "hu": 40, "ws": 2.5, "ic": "01d"},
        },
    },
}


@pytest.fixture(autouse=True)
def no_keys(monkeypatch):
    monkeypatch.setattr(config, "IQAIR_API_KEY", "")
    monkeypatch.setattr(config, "OPENWEATHER_API_KEY", "")
    monkeypatch.setattr(config, "MAX_RETRIES", 2)
    monkeypatch.setattr(live.time, "sleep", lambda seconds: None)


def route(responses, calls=None):
    def fake_get(url, params=None, timeout=None):
        if calls is not None:
            calls.append(url)
        for suffix, response in responses.items():
            if url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected url {url}")
    return fake_get


def test_fallback_without_keys(monkeypatch):
    monkeypatch.setattr(live.requests, "get", route({}))
    delhi = live.fetch_aqi_data("Delhi")
    assert delhi["aqi"] == 185
    assert delhi["weather"]["temperature"] == 30
    unknown = live.fetch_aqi_data("Springfield")
    assert unknown["aqi"] == 99
    assert unknown["city"] == "Springfield"


def test_iqair_record_is_normalised(monkeypatch):
    monkeypatch.setattr(config, "IQAIR_API_KEY", "key")
    monkeypatch.setattr(live.requests, "get", route({"/city": FakeResponse(IQAIR_OK)}))
    record = live.fetch_aqi_data("delhi")
    assert record["aqi"] == 500
    assert record["city"] == "New Delhi"
    assert record["weather"] == {"temperature": 30, "humidity": 40, "wind_speed": 2.5, "icon": "01d"}


def test_iqair_failure_falls_back_to_openweather(monkeypatch):
    monkeypatch.setattr(config, "IQAIR_API_KEY", "key")
    monkeypatch.setattr(config, "OPENWEATHER_API_KEY", "key")
    calls = []
    monkeypatch.setattr(live.requests, "get", route({
        "/city": requests.ConnectionError("down"),
        "/weather": FakeResponse(OPENWEATHER_CURRENT),
        "/air_pollution": FakeResponse({"list": [{"main": {"aqi": 4}}]}),
    }, calls))
    record = live.fetch_aqi_data("mumbai")
    assert record["aqi"] == 150
    assert record["weather"]["temperature"] == 29
    assert record["weather"]["icon"] == "02d"
    # IQAir was retried before giving up
    assert sum(url.endswith("/city") for url in calls) == 2


def test_rate_limited_provider_is_not_retried(monkeypatch):
    monkeypatch.setattr(config, "IQAIR_API_KEY", "key")
    calls = []
    monkeypatch.setattr(live.requests, "get", route({"/city": FakeResponse({}, status_code=429)}, calls))
    record = live.fetch_aqi_data("delhi")
    assert record["aqi"] == 185
    assert len(calls) == 1


def test_unmapped_city_skips_iqair(monkeypatch):
    monkeypatch.setattr(config, "IQAIR_API_KEY", "key")
    calls = []
    monkeypatch.setattr(live.requests, "get", route({}, calls))
    assert live.fetch_aqi_data("Springfield")["aqi"] == 99
    assert calls == []


def test_openweather_unknown_index(monkeypatch):
    monkeypatch.setattr(config, "OPENWEATHER_API_KEY", "key")
    monkeypatch.setattr(live.requests, "get", route({
        "/weather": FakeResponse(OPENWEATHER_CURRENT),
        "/air_pollution": FakeResponse({"list": []}),
    }))
    assert live.fetch_aqi_data("mumbai")["aqi"] == 99


def test_history_without_key_is_mocked():
    history = live.fetch_historical_aqi("pune", 3)
    assert len(history) == 3
    assert {h["aqi"] for h in history} == {99}
    assert history[0]["timestamp"] < history[-1]["timestamp"]


def test_history_per_day(monkeypatch):
    monkeypatch.setattr(config, "OPENWEATHER_API_KEY", "key")
    monkeypatch.setattr(live.requests, "get", route({
        "/air_pollution/history": FakeResponse({"list": [{"main": {"aqi": 2}}]}),
        "/weather": FakeResponse(OPENWEATHER_CURRENT),
    }))
    history = live.fetch_historical_aqi("mumbai", 2)
    assert [h["aqi"] for h in history] == [50, 50]
    assert history[0]["weather"]["humidity"] == 60
