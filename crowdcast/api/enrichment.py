"""
Enrichment API endpoint backed by AviationStack.

Provides:
- GET /api/aviationstack?type=airline&code=TP
- GET /api/aviationstack?type=aircraft&code=A21N
- GET /api/aviationstack?type=historical&airport=LIS&date=2025-11-30

Reference data changes slowly and historical data not at all, so these
use the long TTLs from the cache policy.
"""

import logging

from flask import Blueprint, jsonify, request, current_app

from crowdcast.cache import fetch_with_cache
from crowdcast.config import config

logger = logging.getLogger(__name__)

enrichment_bp = Blueprint('enrichment', __name__, url_prefix='/api/aviationstack')


@enrichment_bp.route('', methods=['GET'])
def enrichment():
    """
    Look up airline, aircraft or historical data.

    Query parameters:
    - type: airline | aircraft | historical (required)
    - code: airline or aircraft code (airline/aircraft)
    - airport, date: airport code and YYYY-MM-DD (historical)
    """
    lookup_type = request.args.get('type', '')
    code = (request.args.get('code') or '').strip().upper()
    airport = (request.args.get('airport') or '').strip().upper()
    date = (request.args.get('date') or '').strip()

    cache = current_app.config['SERVER_CACHE']
    service = current_app.config['AVIATIONSTACK']

    if lookup_type in ('airline', 'aircraft'):
        if not code:
            return jsonify({'error': 'Missing required parameter: code'}), 400

        fetch = service.get_airline if lookup_type == 'airline' else service.get_aircraft
        data = fetch_with_cache(
            cache,
            lookup_type,
            {'code': code},
            lambda: fetch(code),
            ttl=config.cache.reference_ttl,
        )
        return jsonify(data)

    if lookup_type == 'historical':
        if not airport or not date:
            return jsonify({'error': 'Missing required parameters: airport and date'}), 400

        data = fetch_with_cache(
            cache,
            'historical',
            {'airport': airport, 'date': date},
            lambda: service.get_historical(airport, date),
            ttl=config.cache.historical_ttl,
        )
        return jsonify(data)

    return jsonify({'error': 'Invalid type parameter'}), 400
