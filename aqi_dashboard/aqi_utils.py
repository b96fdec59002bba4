# Reference: Indian National AQI breakpoints (CPCB), as used by the dashboard.
# Segments are (C_low, C_high, I_low, I_high). The gaps between segments
# (e.g. 30..31 for PM2.5, 1..1.1 for CO) are part of the table; a value that
# lands in a gap has no sub-index and maps to 0.
import logging
import math

from .errors import UnknownPollutantError

log = logging.getLogger(__name__)

POLLUTANTS = ("pm25", "pm10", "no2", "so2", "o3", "co")

PM25_BREAKPOINTS = [
    (0, 30, 0, 50),
    (31, 60, 51, 100),
    (61, 90, 101, 200),
    (91, 120, 201, 300),
    (121, 250, 301, 400),
    (251, 500, 401, 500)
]

PM10_BREAKPOINTS = [
    (0, 50, 0, 50),
    (51, 100, 51, 100),
    (101, 250, 101, 200),
    (251, 350, 201, 300),
    (351, 430, 301, 400),
    (431, 500, 401, 500)
]

NO2_BREAKPOINTS = [
    (0, 40, 0, 50),
    (41, 80, 51, 100),
    (81, 180, 101, 200),
    (181, 280, 201, 300),
    (281, 400, 301, 400),
    (401, 500, 401, 500)
]

SO2_BREAKPOINTS = [
    (0, 40, 0, 50),
    (41, 80, 51, 100),
    (81, 380, 101, 200),
    (381, 800, 201, 300),
    (801, 1600, 301, 400),
    (1601, 2000, 401, 500)
]

O3_BREAKPOINTS = [
    (0, 50, 0, 50),
    (51, 100, 51, 100),
    (101, 168, 101, 200),
    (169, 208, 201, 300),
    (209, 748, 301, 400),
    (749, 1000, 401, 500)
]

# CO in mg/m³
CO_BREAKPOINTS = [
    (0, 1, 0, 50),
    (1.1, 2, 51, 100),
    (2.1, 10, 101, 200),
    (10.1, 17, 201, 300),
    (17.1, 34, 301, 400),
    (34.1, 50, 401, 500)
]

BREAKPOINTS = {
    "pm25": PM25_BREAKPOINTS,
    "pm10": PM10_BREAKPOINTS,
    "no2": NO2_BREAKPOINTS,
    "so2": SO2_BREAKPOINTS,
    "o3": O3_BREAKPOINTS,
    "co": CO_BREAKPOINTS,
}

AQI_CATEGORIES = [
    {
        "name": "Good",
        "max_aqi": 50,
        "advice": "Air quality is satisfactory, and air pollution poses little or no risk.",
        "sensitive_advice": "No special precautions needed.",
        "general_advice": "Enjoy your usual outdoor activities.",
    },
    {
        "name": "Moderate",
        "max_aqi": 100,
        "advice": "Air quality is acceptable. However, there may be a risk for some people.",
        "sensitive_advice": "Consider reducing prolonged or heavy outdoor exertion.",
        "general_advice": "Most people can continue their normal activities.",
    },
    {
        "name": "Unhealthy for Sensitive Groups",
        "max_aqi": 150,
        "advice": "Members of sensitive groups may experience health effects.",
        "sensitive_advice": "Reduce prolonged or heavy outdoor exertion. Take more breaks during outdoor activities.",
        "general_advice": "Consider reducing prolonged or heavy outdoor exertion if you experience symptoms.",
    },
    {
        "name": "Unhealthy",
        "max_aqi": 200,
        "advice": "Everyone may begin to experience health effects.",
        "sensitive_advice": "Avoid prolonged or heavy outdoor exertion. Move activities indoors.",
        "general_advice": "Reduce prolonged or heavy outdoor exertion. Take more breaks during outdoor activities.",
    },
    {
        "name": "Very Unhealthy",
        "max_aqi": 300,
        "advice": "Health warnings of emergency conditions. The entire population is more likely to be affected.",
        "sensitive_advice": "Avoid all outdoor exertion. Stay indoors and keep windows closed.",
        "general_advice": "Avoid prolonged or heavy outdoor exertion. Consider moving activities indoors.",
    },
    {
        "name": "Hazardous",
        "max_aqi": None,
        "advice": "Health alert: everyone may experience more serious health effects.",
        "sensitive_advice": "Stay indoors and keep windows closed. Use air purifiers if available.",
        "general_advice": "Avoid all outdoor activities. Stay indoors and keep windows closed.",
    },
]


def round_half_up(value):
    return int(math.floor(value + 0.5))


def _is_missing(value):
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


def calc_aqi(conc, breakpoints):
    for C_low, C_high, I_low, I_high in breakpoints:
        if C_low <= conc <= C_high:
            aqi = ((I_high - I_low)/(C_high - C_low)) * (conc - C_low) + I_low
            return round_half_up(aqi)
    return 0


def sub_index(pollutant, concentration):
    """Map one pollutant concentration to its AQI sub-index.

    Values outside every segment, including the gaps between segments,
    return 0 rather than raising.
    """
    try:
        breakpoints = BREAKPOINTS[pollutant]
    except KeyError:
        raise UnknownPollutantError(f"Unknown pollutant: {pollutant!r}") from None
    return calc_aqi(float(concentration), breakpoints)


def sub_indices(reading):
    """Sub-index for every pollutant present in ``reading``; other keys are ignored."""
    result = {}
    for param in POLLUTANTS:
        value = reading.get(param)
        if _is_missing(value):
            continue
        result[param] = sub_index(param, value)
    return result


def dominant_pollutant(reading):
    """Return ``(aqi, pollutant)`` for the pollutant with the highest sub-index.

    Ties go to the pollutant listed first in POLLUTANTS. An empty reading
    yields ``(0, None)``.
    """
    best_aqi, best_param = 0, None
    for param, aqi in sub_indices(reading).items():
        if best_param is None or aqi > best_aqi:
            best_aqi, best_param = aqi, param
    return best_aqi, best_param


def aggregate_aqi(reading):
    # AQI is max of pollutant sub-indices; no pollutants -> 0
    aqi, _ = dominant_pollutant(reading)
    return aqi


def aqi_category(aqi):
    for category in AQI_CATEGORIES:
        if category["max_aqi"] is None or aqi <= category["max_aqi"]:
            return category
    return AQI_CATEGORIES[-1]


def normalize_aqi(value):
    """Clamp a provider AQI into [0, 500]; NaN and negatives become 0."""
    if _is_missing(value) or value < 0:
        return 0
    if value > 500:
        return 500
    return round_half_up(value)


def normalize_pollutant(value):
    if _is_missing(value) or value < 0:
        return 0
    return round_half_up(value * 100) / 100


def fill_missing_aqi(records):
    """Compute ``aqi`` for records that carry pollutant values but no usable AQI."""
    filled = []
    for record in records:
        record = dict(record)
        aqi = record.get("aqi")
        if _is_missing(aqi) or not aqi:
            readings = {p: record.get(p) for p in POLLUTANTS if not _is_missing(record.get(p))}
            if readings:
                record["aqi"] = aggregate_aqi(readings)
                log.debug(f"🔹 [AQI] Filled missing AQI for {record.get('date')}: {record['aqi']}")
        filled.append(record)
    return filled
