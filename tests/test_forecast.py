from datetime import date

import numpy as np
import pytest

from aqi_dashboard import forecast
from aqi_dashboard.errors import InsufficientInputError, InvalidInputError, UnknownModelError
from aqi_dashboard.forecast import (
    actual_overlay,
    city_baseline,
    date_label,
    generate_forecast,
    horizon_for_timeframe,
    most_recent_first,
    resolve_base_aqi,
)
from tests.conftest import ZeroRng

TODAY = date(2026, 3, 10)


@pytest.mark.parametrize("model_id", ["xgboost", "lstm", "ensemble"])
@pytest.mark.parametrize("days", [1, 7, 30, 90])
def test_length_and_bounds(model_id, days):
    for seed in range(5):
        points = generate_forecast(model_id, [], days, baseline_aqi=180, rng=np.random.default_rng(seed))
        assert len(points) == days
        assert all(20 <= p["predicted"] <= 500 for p in points)
        assert all(isinstance(p["predicted"], int) for p in points)


def test_predictions_clamped_at_both_ends():
    low = generate_forecast("xgboost", [], 7, baseline_aqi=1, rng=np.random.default_rng(1))
    assert {p["predicted"] for p in low} == {20}
    high = generate_forecast("xgboost", [], 7, baseline_aqi=10000, rng=np.random.default_rng(1))
    assert {p["predicted"] for p in high} == {500}


def test_formula_without_noise():
    points = generate_forecast("ensemble", [], 4, baseline_aqi=100, rng=ZeroRng(), today=TODAY)
    # base + i*0.25 + sin(2*pi*i/4) * 0.3 * 100 * 0.2
    assert [p["predicted"] for p in points] == [100, 106, 101, 95]


def test_date_labels_start_today():
    points = generate_forecast("lstm", [], 3, baseline_aqi=100, rng=ZeroRng(), today=TODAY)
    assert [p["date"] for p in points] == ["Mar 10", "Mar 11", "Mar 12"]
    assert date_label(date(2026, 12, 31)) == "Dec 31"


def test_base_from_history_mean():
    history = [{"aqi": 100}, {"aqi": 200}, {"date": "2024-01-01"}]
    points = generate_forecast("xgboost", history, 1, baseline_aqi=50, rng=ZeroRng(), today=TODAY)
    assert points[0]["predicted"] == 150


def test_zero_aqi_counts_as_absent():
    assert resolve_base_aqi([{"aqi": 0}, {"aqi": 120}]) == 120


def test_history_without_aqi_uses_default_baseline():
    assert resolve_base_aqi([{"pm25": 10}], baseline_aqi=80) == 100
    assert resolve_base_aqi([{"aqi": 0}, {"date": "2024-01-01"}]) == 100
    points = generate_forecast("ensemble", [{"pm25": 10}], 1, baseline_aqi=180, rng=ZeroRng(), today=TODAY)
    assert points[0]["predicted"] == 100


def test_empty_history_uses_supplied_baseline():
    assert resolve_base_aqi([], baseline_aqi=80) == 80
    assert resolve_base_aqi(None, baseline_aqi=80) == 80


def test_empty_history_without_baseline():
    with pytest.raises(InsufficientInputError):
        generate_forecast("lstm", [], 7)


def test_unknown_model():
    with pytest.raises(UnknownModelError):
        generate_forecast("arima", [], 7, baseline_aqi=100)


@pytest.mark.parametrize("days", [0, -3, 2.5, True])
def test_invalid_horizon(days):
    with pytest.raises(InvalidInputError):
        generate_forecast("lstm", [], days, baseline_aqi=100)


def test_actual_joined_on_generated_label_not_history_date():
    history = [{"date": "2024-01-01", "aqi": 100}]
    points = generate_forecast("ensemble", history, 7, rng=ZeroRng(), today=TODAY)
    assert points[0] == {"date": "Mar 10", "predicted": 100, "actual": 100}
    assert all("actual" not in p for p in points[1:])
    assert "Jan 1" not in [p["date"] for p in points]


def test_actuals_most_recent_first():
    history = [
        {"date": "2024-01-01", "aqi": 50},
        {"date": "2024-01-03", "aqi": 70},
        {"aqi": 40},
        {"date": "2024-01-02", "aqi": 60},
    ]
    short = generate_forecast("lstm", history, 3, rng=ZeroRng(), today=TODAY)
    assert [p.get("actual") for p in short] == [70, 60, 50]
    longer = generate_forecast("lstm", history, 6, rng=ZeroRng(), today=TODAY)
    assert [p.get("actual") for p in longer] == [70, 60, 50, 40, None, None]


def test_unparseable_dates_sort_last():
    history = [{"date": "not a date", "aqi": 1}, {"date": "2023-05-05", "aqi": 2}, {"aqi": 3}]
    assert [p["aqi"] for p in most_recent_first(history)] == [2, 1, 3]


def test_colliding_labels_share_one_actual(monkeypatch):
    monkeypatch.setattr(forecast, "date_label", lambda day: "same")
    history = [{"date": "2024-01-02", "aqi": 70}, {"date": "2024-01-01", "aqi": 60}]
    assert actual_overlay(history, 5, TODAY) == {"same": 60}
    points = generate_forecast("lstm", history, 5, rng=ZeroRng(), today=TODAY)
    assert [p["actual"] for p in points] == [60] * 5


def test_city_baseline():
    assert city_baseline("Delhi") == 180
    assert city_baseline("bangalore") == 45
    assert city_baseline("Springfield") == 100
    assert city_baseline(None) == 100


def test_horizon_for_timeframe():
    assert horizon_for_timeframe("week") == 7
    assert horizon_for_timeframe("month") == 30
    assert horizon_for_timeframe("quarter") == 90


def test_horizon_for_timeframe_rejects_non_string():
    with pytest.raises(InvalidInputError):
        horizon_for_timeframe(["week"])
    with pytest.raises(InvalidInputError):
        horizon_for_timeframe(None)


@pytest.mark.parametrize("model_id", [["lstm"], {"id": "lstm"}, None, 3])
def test_non_string_model_ids_rejected(model_id):
    with pytest.raises(UnknownModelError):
        generate_forecast(model_id, [], 7, baseline_aqi=100)


def test_date_labels_ignore_locale():
    import locale

    saved = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
    except locale.Error:
        pytest.skip("de_DE locale not installed")
    try:
        assert date_label(date(2026, 3, 5)) == "Mar 5"
        assert date_label(date(2026, 5, 1)) == "May 1"
        assert date_label(date(2026, 10, 9)) == "Oct 9"
    finally:
        locale.setlocale(locale.LC_TIME, saved)


def test_date_labels_every_month():
    labels = [date_label(date(2026, m, 1)) for m in range(1, 13)]
    assert labels == ["Jan 1", "Feb 1", "Mar 1", "Apr 1", "May 1", "Jun 1",
                      "Jul 1", "Aug 1", "Sep 1", "Oct 1", "Nov 1", "Dec 1"]
