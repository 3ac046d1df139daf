"""
Crowd prediction API endpoint.

Provides:
- GET /api/predict?airport=LIS&date=2025-12-31 - Non-Schengen crowd prediction

Predictions are cached per (airport, date) for the schedule TTL, since
schedules shift during the day but not minute to minute.
"""

import logging
import time
from datetime import datetime, timedelta, timezone

from flask import Blueprint, jsonify, request, current_app

from crowdcast.cache import fetch_with_cache
from crowdcast.config import config

logger = logging.getLogger(__name__)

predict_bp = Blueprint('predict', __name__, url_prefix='/api/predict')


@predict_bp.route('', methods=['GET'])
def predict():
    """
    Predict passport-control crowd levels for an airport and day.

    Query parameters:
    - airport: airport code (required)
    - date: YYYY-MM-DD, from today up to MAX_DAYS_AHEAD days out (required)

    Upstream failures are mapped to error responses by the app's
    UpstreamError handler and are not cached.
    """
    start_time = time.perf_counter()

    airport = (request.args.get('airport') or '').strip().upper()
    date = (request.args.get('date') or '').strip()

    logger.info(f'Prediction requested: airport={airport} date={date}')

    if not airport or not date:
        return jsonify({'error': 'Missing required parameters: airport and date'}), 400

    try:
        day = datetime.strptime(date, '%Y-%m-%d').date()
    except ValueError:
        return jsonify({'error': 'Invalid date, expected YYYY-MM-DD'}), 400

    today = datetime.now(timezone.utc).date()
    max_days = config.prediction.max_days_ahead
    if not (today <= day <= today + timedelta(days=max_days)):
        return jsonify({'error': f'Date must be between today and {max_days} days ahead'}), 400

    cache = current_app.config['SERVER_CACHE']
    predictor = current_app.config['CROWD_PREDICTOR']

    result = fetch_with_cache(
        cache,
        'prediction',
        {'airport': airport, 'date': date},
        lambda: predictor.predict(airport, date),
        ttl=config.cache.schedule_ttl,
    )

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        **result,
        'query_time_ms': round(query_time_ms, 2),
    })
