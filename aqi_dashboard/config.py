import os

# Persistence
MONGODB_URI = os.getenv("MONGODB_URI", "")
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "aqi_dashboard")

# Live data providers
IQAIR_API_KEY = os.getenv("IQAIR_API_KEY", "")
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")
IQAIR_BASE_URL = os.getenv("IQAIR_BASE_URL", "https://api.airvisual.com/v2")
OPENWEATHER_BASE_URL = os.getenv("OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))

# city-trends response cache and per-client rate limit
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))
RATE_LIMIT = int(os.getenv("RATE_LIMIT", "20"))
RATE_WINDOW_SECONDS = float(os.getenv("RATE_WINDOW_SECONDS", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def as_dict():
    return {
        "MONGODB_URI": MONGODB_URI,
        "MONGODB_DATABASE": MONGODB_DATABASE,
        "IQAIR_API_KEY": IQAIR_API_KEY,
        "OPENWEATHER_API_KEY": OPENWEATHER_API_KEY,
        "CACHE_TTL_SECONDS": CACHE_TTL_SECONDS,
        "RATE_LIMIT": RATE_LIMIT,
        "RATE_WINDOW_SECONDS": RATE_WINDOW_SECONDS,
    }
