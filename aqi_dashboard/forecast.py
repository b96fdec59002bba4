# Synthetic daily AQI forecast: baseline + bounded noise + linear trend + one
# sine "season" over the horizon. Model ids only select the parameter triple.
import logging
import math
from collections import namedtuple
from datetime import date, timedelta
from numbers import Number

import numpy as np
import pandas as pd

from .errors import InsufficientInputError, InvalidInputError, UnknownModelError

log = logging.getLogger(__name__)

ModelParams = namedtuple("ModelParams", ["volatility", "trend", "seasonality"])

MODEL_PARAMS = {
    "xgboost": ModelParams(volatility=0.15, trend=0.30, seasonality=0.20),
    "lstm": ModelParams(volatility=0.10, trend=0.20, seasonality=0.40),
    "ensemble": ModelParams(volatility=0.08, trend=0.25, seasonality=0.30),
}

# Default base AQI per city when no history is available
CITY_BASELINE_AQI = {
    "delhi": 180,
    "mumbai": 95,
    "bangalore": 45,
    "chennai": 120,
    "kolkata": 135,
    "hyderabad": 85,
    "pune": 90,
    "ahmedabad": 110,
}
DEFAULT_BASELINE_AQI = 100

TIMEFRAME_DAYS = {"week": 7, "month": 30}
DEFAULT_TIMEFRAME_DAYS = 90

MIN_PREDICTED_AQI = 20
MAX_PREDICTED_AQI = 500

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def city_baseline(city):
    if not city:
        return DEFAULT_BASELINE_AQI
    return CITY_BASELINE_AQI.get(str(city).lower(), DEFAULT_BASELINE_AQI)


def horizon_for_timeframe(timeframe):
    if not isinstance(timeframe, str):
        raise InvalidInputError(f"timeframe must be a string, got {timeframe!r}")
    return TIMEFRAME_DAYS.get(timeframe, DEFAULT_TIMEFRAME_DAYS)


def get_model_params(model_id):
    if not isinstance(model_id, str) or model_id not in MODEL_PARAMS:
        raise UnknownModelError(f"Unknown model: {model_id!r}")
    return MODEL_PARAMS[model_id]


def date_label(day):
    """Chart label for a forecast day, e.g. ``"Mar 5"``. Always English, whatever the locale."""
    return f"{MONTH_ABBR[day.month - 1]} {day.day}"


def _aqi_value(point):
    """The point's AQI as a float, or None when absent. 0 counts as absent."""
    value = point.get("aqi") if isinstance(point, dict) else None
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or value == 0:
        return None
    return value


def _date_sort_key(point):
    """Epoch seconds of the point's date; missing or unparseable dates sort as earliest."""
    raw = point.get("date") if isinstance(point, dict) else None
    if raw is None or raw == "":
        return float("-inf")
    try:
        if isinstance(raw, Number):
            ts = pd.to_datetime(raw, unit="ms", errors="coerce")
        else:
            ts = pd.to_datetime(raw, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return float("-inf")
    if ts is None or pd.isna(ts):
        return float("-inf")
    return ts.timestamp()


def resolve_base_aqi(history, baseline_aqi=None):
    """Mean AQI of the history.

    A non-empty history with no usable ``aqi`` falls back to
    DEFAULT_BASELINE_AQI; an empty one to the supplied baseline.
    Raises InsufficientInputError when the history is empty and no
    baseline is given.
    """
    values = [v for v in (_aqi_value(p) for p in history or []) if v is not None]
    if values:
        return sum(values) / len(values)
    if history:
        return float(DEFAULT_BASELINE_AQI)
    if baseline_aqi is None:
        raise InsufficientInputError("No AQI values in history and no baseline AQI supplied")
    return float(baseline_aqi)


def most_recent_first(history):
    # sorted() is stable, so points with equal dates keep their input order
    return sorted(history or [], key=_date_sort_key, reverse=True)


def actual_overlay(history, horizon_days, today):
    """Map forecast date labels to observed AQI values.

    The i-th most recent point is keyed by the label of ``today + i``. Labels
    are plain strings, so two offsets that format the same collapse into one
    entry (the later offset wins).
    """
    recent = most_recent_first(history)
    overlay = {}
    for i in range(min(horizon_days, len(recent))):
        aqi = _aqi_value(recent[i])
        if aqi is not None:
            overlay[date_label(today + timedelta(days=i))] = recent[i]["aqi"]
    return overlay


def generate_forecast(model_id, history, horizon_days, baseline_aqi=None, rng=None, today=None):
    """
    Produce ``horizon_days`` daily points ``{"date", "predicted"[, "actual"]}``
    starting at ``today``.

    - base AQI is the mean of the history's ``aqi`` values, or ``baseline_aqi``
    - predicted = base + noise + trend + seasonality, clamped to [20, 500]
    - ``actual`` is joined by date label from the most recent history points
    """
    params = get_model_params(model_id)
    if not isinstance(horizon_days, int) or isinstance(horizon_days, bool) or horizon_days <= 0:
        raise InvalidInputError(f"horizon_days must be a positive integer, got {horizon_days!r}")

    base_aqi = resolve_base_aqi(history, baseline_aqi)
    rng = rng if rng is not None else np.random.default_rng()
    today = today or date.today()

    overlay = actual_overlay(history, horizon_days, today)
    log.info(f"🔹 [Forecast] model={model_id} days={horizon_days} base_aqi={base_aqi:.1f} "
             f"history={len(history or [])} actuals={len(overlay)}")

    results = []
    for i in range(horizon_days):
        label = date_label(today + timedelta(days=i))

        random_factor = float(rng.uniform(-1.0, 1.0)) * params.volatility * base_aqi
        trend_factor = i * params.trend
        seasonal_factor = math.sin(2 * math.pi * i / horizon_days) * params.seasonality * base_aqi * 0.2

        predicted = base_aqi + random_factor + trend_factor + seasonal_factor
        predicted = max(MIN_PREDICTED_AQI, min(MAX_PREDICTED_AQI, predicted))

        point = {"date": label, "predicted": int(math.floor(predicted + 0.5))}
        if label in overlay:
            point["actual"] = int(math.floor(float(overlay[label]) + 0.5))
        results.append(point)

    return results
