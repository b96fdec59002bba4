"""AQI dashboard backend: pollutant -> AQI conversion, synthetic forecasts and the Flask API."""

__version__ = "0.1.0"
