import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from . import config
from .aqi_utils import normalize_aqi

log = logging.getLogger(__name__)

# OpenWeather reports 1=Good .. 5=Very Poor
OPENWEATHER_AQI_MAP = [0, 50, 100, 150, 200, 300]
UNKNOWN_AQI = 99

DEFAULT_WEATHER = {"temperature": 25, "humidity": 50, "wind_speed": 2, "icon": "01d"}

FALLBACK_DATA = {
    "delhi": {"aqi": 185, "city": "Delhi",
              "weather": {"temperature": 30, "humidity": 40, "wind_speed": 2, "icon": "01d"}},
    "mumbai": {"aqi": 95, "city": "Mumbai",
               "weather": {"temperature": 28, "humidity": 60, "wind_speed": 3, "icon": "01d"}},
    "bangalore": {"aqi": 45, "city": "Bangalore",
                  "weather": {"temperature": 25, "humidity": 55, "wind_speed": 2, "icon": "01d"}},
}

# IQAir needs state + country alongside the city name
CITY_STATE_COUNTRY = {
    "delhi": ("Delhi", "India"),
    "mumbai": ("Maharashtra", "India"),
    "bangalore": ("Karnataka", "India"),
    "chennai": ("Tamil Nadu", "India"),
    "hyderabad": ("Telangana", "India"),
    "kolkata": ("West Bengal", "India"),
    "pune": ("Maharashtra", "India"),
    "ahmedabad": ("Gujarat", "India"),
    "visakhapatnam": ("Andhra Pradesh", "India"),
    "lucknow": ("Uttar Pradesh", "India"),
    "kanpur": ("Uttar Pradesh", "India"),
    "nagpur": ("Maharashtra", "India"),
    "indore": ("Madhya Pradesh", "India"),
    "thane": ("Maharashtra", "India"),
    "bhopal": ("Madhya Pradesh", "India"),
    "patna": ("Bihar", "India"),
    "vadodara": ("Gujarat", "India"),
    "ghaziabad": ("Uttar Pradesh", "India"),
    "ludhiana": ("Punjab", "India"),
    "surat": ("Gujarat", "India"),
    "agra": ("Uttar Pradesh", "India"),
    "jaipur": ("Rajasthan", "India"),
    "chandigarh": ("Chandigarh", "India"),
    "guwahati": ("Assam", "India"),
    "bhubaneswar": ("Odisha", "India"),
    "dehradun": ("Uttarakhand", "India"),
    "coimbatore": ("Tamil Nadu", "India"),
    "panaji": ("Goa", "India"),
}


class ProviderError(Exception):
    pass


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _http_get_with_retries(url: str, params: Dict[str, Any]) -> Dict[str, Any]:
    last_exc: Optional[Exception] = None
    for attempt in range(1, config.MAX_RETRIES + 1):
        try:
            response = requests.get(url, params=params, timeout=config.REQUEST_TIMEOUT_SECONDS)
            if response.status_code == 429:
                # retrying a rate-limited key only makes it worse
                raise ProviderError("Rate limit exceeded. Please try again later.")
            response.raise_for_status()
            return response.json()
        except ProviderError:
            raise
        except requests.RequestException as exc:
            last_exc = exc
            # brief backoff
            time.sleep(min(0.25 * attempt, 2.0))
    # If we exhausted retries, raise the last exception
    if last_exc:
        raise last_exc
    return {}


def fallback_record(city: str) -> Dict[str, Any]:
    base = FALLBACK_DATA.get(city.lower())
    if base is None:
        base = {"aqi": UNKNOWN_AQI, "city": city, "weather": DEFAULT_WEATHER}
    return {**base, "weather": dict(base["weather"]), "timestamp": _iso_now()}


def _openweather_aqi(index: Optional[int]) -> int:
    if isinstance(index, int) and 0 <= index < len(OPENWEATHER_AQI_MAP) and OPENWEATHER_AQI_MAP[index]:
        return OPENWEATHER_AQI_MAP[index]
    return UNKNOWN_AQI


def _openweather_current(city: str) -> Dict[str, Any]:
    return _http_get_with_retries(
        f"{config.OPENWEATHER_BASE_URL}/weather",
        {"q": city, "appid": config.OPENWEATHER_API_KEY, "units": "metric"},
    )


def fetch_from_openweather(city: str) -> Optional[Dict[str, Any]]:
    if not config.OPENWEATHER_API_KEY:
        return None
    log.info(f"🔹 [Live] OpenWeather lookup for {city}")
    try:
        weather = _openweather_current(city)
        coord = weather["coord"]
        pollution = _http_get_with_retries(
            f"{config.OPENWEATHER_BASE_URL}/air_pollution",
            {"lat": coord["lat"], "lon": coord["lon"], "appid": config.OPENWEATHER_API_KEY},
        )
        entries = pollution.get("list") or []
        index = entries[0].get("main", {}).get("aqi") if entries else None
        return {
            "aqi": _openweather_aqi(index),
            "city": weather.get("name", city),
            "weather": {
                "temperature": round(weather["main"]["temp"]),
                "humidity": weather["main"].get("humidity"),
                "wind_speed": weather.get("wind", {}).get("speed"),
                "icon": (weather.get("weather") or [{}])[0].get("icon", "01d"),
            },
            "timestamp": _iso_now(),
        }
    except (requests.RequestException, ProviderError, KeyError, TypeError, ValueError) as e:
        log.warning(f"⚠️ [Live] OpenWeather fetch failed for {city}: {e!r}")
        return None


def fetch_from_iqair(city: str) -> Optional[Dict[str, Any]]:
    mapping = CITY_STATE_COUNTRY.get(city.lower())
    if not config.IQAIR_API_KEY or mapping is None:
        return None
    state, country = mapping
    log.info(f"🔹 [Live] IQAir lookup for {city}")
    try:
        data = _http_get_with_retries(
            f"{config.IQAIR_BASE_URL}/city",
            {
                "city": "New Delhi" if state == "Delhi" else city,
                "state": state,
                "country": country,
                "key": config.IQAIR_API_KEY,
            },
        )
        if data.get("status") != "success" or not data.get("data"):
            raise ProviderError("Invalid response from IQAir API")
        current = data["data"]["current"]
        pollution, weather = current["pollution"], current["weather"]
        return {
            "aqi": normalize_aqi(pollution.get("aqius")),
            "city": data["data"].get("city", city),
            "weather": {
                "temperature": weather.get("tp"),
                "humidity": weather.get("hu"),
                "wind_speed": weather.get("ws"),
                "icon": weather.get("ic", "01d"),
            },
            "timestamp": pollution.get("ts") or _iso_now(),
        }
    except (requests.RequestException, ProviderError, KeyError, TypeError, ValueError) as e:
        log.warning(f"⚠️ [Live] IQAir fetch failed for {city}: {e!r}")
        return None


def fetch_aqi_data(city: str) -> Dict[str, Any]:
    """
    Current AQI and weather for a city.

    Tries IQAir, then OpenWeatherMap, then the static fallback table, so the
    caller always gets a record of the same shape.
    """
    record = fetch_from_iqair(city) or fetch_from_openweather(city)
    if record is None:
        log.warning(f"⚠️ [Live] No provider data for {city}, using fallback record")
        record = fallback_record(city)
    return record


def _mock_history(city: str, days: int) -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    return [
        {
            "aqi": UNKNOWN_AQI,
            "city": city,
            "weather": dict(DEFAULT_WEATHER),
            "timestamp": (now - timedelta(days=days - 1 - i)).isoformat(),
        }
        for i in range(days)
    ]


def fetch_historical_aqi(city: str, days: int) -> List[Dict[str, Any]]:
    """One record per day for the past ``days`` days, oldest first."""
    if not config.OPENWEATHER_API_KEY:
        log.warning("⚠️ [Live] OpenWeather API key not set, using mock history")
        return _mock_history(city, days)

    try:
        weather = _openweather_current(city)
        coord = weather["coord"]
        current_weather = {
            "temperature": round(weather["main"]["temp"]),
            "humidity": weather["main"].get("humidity"),
            "wind_speed": weather.get("wind", {}).get("speed"),
            "icon": (weather.get("weather") or [{}])[0].get("icon", "01d"),
        }
    except (requests.RequestException, ProviderError, KeyError, TypeError, ValueError) as e:
        log.warning(f"⚠️ [Live] OpenWeather history lookup failed for {city}: {e!r}")
        return _mock_history(city, days)

    results = []
    now = datetime.now(timezone.utc)
    for i in range(days):
        day = now - timedelta(days=days - 1 - i)
        start = int(day.timestamp())
        try:
            history = _http_get_with_retries(
                f"{config.OPENWEATHER_BASE_URL}/air_pollution/history",
                {"lat": coord["lat"], "lon": coord["lon"], "start": start, "end": start + 86399,
                 "appid": config.OPENWEATHER_API_KEY},
            )
            entries = history.get("list") or []
            index = entries[0].get("main", {}).get("aqi") if entries else 3
            results.append({"aqi": _openweather_aqi(index), "city": city,
                            "weather": dict(current_weather), "timestamp": day.isoformat()})
        except (requests.RequestException, ProviderError) as e:
            log.warning(f"⚠️ [Live] History for {city} on {day:%Y-%m-%d} failed: {e!r}")
            results.append({"aqi": UNKNOWN_AQI, "city": city,
                            "weather": dict(DEFAULT_WEATHER), "timestamp": day.isoformat()})
    return results
