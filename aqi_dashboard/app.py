import logging

import numpy as np
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import BadRequest, NotFound

from . import config
from .aqi_utils import POLLUTANTS, aqi_category, dominant_pollutant, sub_indices
from .cache import RateLimiter, init_cache
from .errors import AQIError, InvalidInputError
from .forecast import city_baseline, generate_forecast, horizon_for_timeframe
from .live import fetch_aqi_data, fetch_historical_aqi
from .model_metrics import adjusted_metrics, list_models
from .store import make_store
from .uploads import parse_upload, records_to_csv

log = logging.getLogger(__name__)

TRENDS_LIMIT = 7
HISTORY_DEFAULT_DAYS = 7
# one OpenWeather request per day
HISTORY_MAX_DAYS = 30


def _json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


def _history_from(body, store):
    if body.get("dataset_id"):
        data = store.get_dataset(str(body["dataset_id"]))
        if data is None:
            raise NotFound("Dataset not found")
        return data
    data = body.get("data") or []
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise InvalidInputError("'data' must be a list of records")
    return data


def _positive_int(name, value):
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidInputError(f"'{name}' must be a positive integer, got {value!r}")
    return value


def _string_field(body, name, default):
    value = body.get(name, default)
    if not isinstance(value, str):
        raise InvalidInputError(f"'{name}' must be a string, got {value!r}")
    return value


def _horizon_from(body):
    if body.get("days") is None:
        return horizon_for_timeframe(_string_field(body, "timeframe", "week"))
    return _positive_int("days", body["days"])


def _trend_date(selected_at):
    return f"{selected_at.month}/{selected_at.day}/{selected_at.year}"


def create_app(config_overrides=None, store=None, cache=None, limiter=None):
    app = Flask(__name__)
    app.config.from_mapping(config.as_dict())
    if config_overrides:
        app.config.update(config_overrides)

    if store is None:
        store = make_store(app.config["MONGODB_URI"], app.config["MONGODB_DATABASE"])
    cache = init_cache(app, cache)
    if limiter is None:
        limiter = RateLimiter(app.config["RATE_LIMIT"], app.config["RATE_WINDOW_SECONDS"])
    app.extensions["aqi_store"] = store
    app.extensions["aqi_cache"] = cache
    app.extensions["aqi_limiter"] = limiter

    @app.errorhandler(AQIError)
    def handle_aqi_error(e):
        log.warning(f"⚠️ [API] {request.path}: {e}")
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return jsonify({"success": False, "error": e.description or "Not found"}), 404

    @app.errorhandler(BadRequest)
    def handle_bad_request(e):
        return jsonify({"success": False, "error": e.description}), 400

    @app.route('/api/health')
    def api_health():
        return jsonify({"ok": True, "service": "aqi-dashboard"})

    @app.route('/api/models')
    def api_models():
        return jsonify({"success": True, "models": list_models()})

    @app.route('/api/upload', methods=['POST'])
    def api_upload():
        body = _json_body()
        # city selection event
        if body.get("city"):
            details = body.get("details")
            if details is not None and not isinstance(details, dict):
                raise InvalidInputError("'details' must be an object")
            doc_id = store.put_selection(str(body["city"]), details)
            log.info(f"🔹 [API] Selection stored for {body['city']}")
            return jsonify({"success": True, "id": doc_id})

        data = body.get("data")
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise InvalidInputError("'data' must be a list of records")
        doc_id = store.put_dataset(data, body.get("user_id"))
        return jsonify({"success": True, "id": doc_id})

    @app.route('/api/upload/file', methods=['POST'])
    def api_upload_file():
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise InvalidInputError("No file uploaded")
        records = parse_upload(upload.filename, upload.read())
        return jsonify({"success": True, "rows": len(records), "data": records})

    @app.route('/api/data/city-trends')
    def api_city_trends():
        ip = request.headers.get('X-Forwarded-For') or 'unknown'
        if not limiter.allow(ip):
            log.warning(f"⚠️ [API] Rate limit hit for {ip}")
            return Response('Too many requests', status=429)

        city = request.args.get('city')
        if not city:
            return jsonify({"success": False, "error": "City is required"}), 400

        cached = cache.get(city)
        if cached is not None:
            log.debug(f"🔹 [API] city-trends cache hit for {city}")
            return jsonify(cached)

        selections = store.recent_selections(city, limit=TRENDS_LIMIT)
        rng = np.random.default_rng()
        trends = []
        for sel in selections:
            details = sel.get("details") or {}
            aqi = details.get("aqi")
            if aqi is None:
                # no reading stored with the selection
                aqi = int(rng.integers(80, 200))
            trends.append({"date": _trend_date(sel["selected_at"]), "aqi": aqi})
        trends.reverse()

        data = {"success": True, "trends": trends}
        cache.set(city, data)
        return jsonify(data)

    @app.route('/api/data/<dataset_id>')
    def api_dataset(dataset_id):
        data = store.get_dataset(dataset_id)
        if data is None:
            raise NotFound("Not found")
        return jsonify({"success": True, "data": data})

    @app.route('/api/data/<dataset_id>/export')
    def api_dataset_export(dataset_id):
        data = store.get_dataset(dataset_id)
        if data is None:
            raise NotFound("Not found")
        return Response(
            records_to_csv(data),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="aqi-data-{dataset_id}.csv"'},
        )

    @app.route('/api/aqi')
    def api_aqi():
        city = request.args.get('city')
        if not city:
            return jsonify({"success": False, "error": "City is required"}), 400
        record = fetch_aqi_data(city)
        return jsonify({"success": True, **record, "category": aqi_category(record["aqi"])["name"]})

    @app.route('/api/aqi/history')
    def api_aqi_history():
        city = request.args.get('city')
        if not city:
            return jsonify({"success": False, "error": "City is required"}), 400
        raw_days = request.args.get('days', str(HISTORY_DEFAULT_DAYS))
        try:
            days = int(raw_days)
        except ValueError:
            raise InvalidInputError(f"'days' must be an integer, got {raw_days!r}") from None
        if not 1 <= days <= HISTORY_MAX_DAYS:
            raise InvalidInputError(f"'days' must be between 1 and {HISTORY_MAX_DAYS}, got {days}")
        history = fetch_historical_aqi(city, days)
        log.info(f"🔹 [API] {len(history)} history records for {city}")
        return jsonify({"success": True, "city": city, "days": days, "history": history})

    @app.route('/api/aqi/calculate', methods=['POST'])
    def api_aqi_calculate():
        body = _json_body()
        reading = {}
        for param in POLLUTANTS:
            value = body.get(param)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise InvalidInputError(f"'{param}' must be a non-negative number")
            reading[param] = value
        if not reading:
            raise InvalidInputError(f"At least one of {', '.join(POLLUTANTS)} is required")

        aqi, dominant = dominant_pollutant(reading)
        category = aqi_category(aqi)
        summary = ", ".join(f"{k}={v}" for k, v in reading.items())
        log.info(f"🔹 [AQI] {summary} -> AQI {aqi} ({dominant})")
        return jsonify({
            "success": True,
            "aqi": aqi,
            "dominant_pollutant": dominant,
            "sub_indices": sub_indices(reading),
            "category": category["name"],
            "advice": category["advice"],
        })

    @app.route('/api/predictions', methods=['POST'])
    def api_predictions():
        body = _json_body()
        model_id = _string_field(body, "model", "ensemble")
        city = _string_field(body, "city", "")
        history = _history_from(body, store)
        days = _horizon_from(body)

        predictions = generate_forecast(model_id, history, days, baseline_aqi=city_baseline(city))
        metrics = adjusted_metrics(model_id, len(history))
        log.info(f"🔹 [API] Forecast ready with {len(predictions)} points")
        return jsonify({
            "success": True,
            "model": model_id,
            "city": city,
            "days": days,
            "predictions": predictions,
            "metrics": metrics,
        })

    return app


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    log.info("🚀 Starting Flask server at http://127.0.0.1:5000")
    app.run(debug=False)


if __name__ == '__main__':
    main()
