"""
Cache status and maintenance endpoints.

Provides endpoints for:
- GET /api/cache/stats - Server cache statistics
- POST /api/cache/sweep - Evict expired entries now
- DELETE /api/cache - Clear the whole namespace, or one entry with ?key=
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

logger = logging.getLogger(__name__)

cache_bp = Blueprint('cache', __name__, url_prefix='/api/cache')


@cache_bp.route('/stats', methods=['GET'])
def get_cache_stats():
    """Server cache and upstream usage statistics."""
    cache = current_app.config['SERVER_CACHE']
    service = current_app.config['AVIATIONSTACK']

    return jsonify({
        'cache': cache.stats,
        'aviationstack': service.stats,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@cache_bp.route('/sweep', methods=['POST'])
def sweep_cache():
    """Run a sweep immediately instead of waiting for the timer."""
    removed = current_app.config['SERVER_CACHE'].sweep()
    return jsonify({'removed': removed})


@cache_bp.route('', methods=['DELETE'])
def clear_cache():
    """
    Clear cached responses.

    Query parameters:
    - key: full cache key to drop; omit (or leave empty) to clear the namespace
    """
    cache = current_app.config['SERVER_CACHE']
    key = request.args.get('key') or None

    cache.clear(key)
    logger.info(f'Cache cleared via API: {key or "all"}')

    return jsonify({
        'success': True,
        'cleared': key or 'all',
    })
