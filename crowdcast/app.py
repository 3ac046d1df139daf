"""
CrowdCast Flask Application.

Main entry point for the prediction API. Initializes:
- Server response cache and its sweep timer
- Upstream clients (FlightAware schedules, AviationStack enrichment)
- API routes

Usage:
    python -m crowdcast.app

Or with gunicorn:
    gunicorn 'crowdcast.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from crowdcast.analytics import CrowdPredictor
from crowdcast.api import cache_bp, enrichment_bp, predict_bp
from crowdcast.cache import ServerCache
from crowdcast.config import config
from crowdcast.errors import (
    InvalidDateRangeError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamError,
)
from crowdcast.services import AviationStackService, FlightAwareClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

# Most specific first; anything else upstream is a bad gateway
UPSTREAM_STATUS = (
    (RateLimitedError, 429),
    (NotFoundError, 404),
    (InvalidDateRangeError, 400),
    (UnauthorizedError, 500),  # Our own key is missing or rejected
)


def upstream_status(error: UpstreamError) -> int:
    for error_type, status in UPSTREAM_STATUS:
        if isinstance(error, error_type):
            return status
    return 502


def create_app(
    server_cache: Optional[ServerCache] = None,
    predictor: Optional[CrowdPredictor] = None,
    aviationstack: Optional[AviationStackService] = None,
    start_sweeper: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        server_cache: Response cache (created from config if None)
        predictor: Crowd predictor (FlightAware-backed from config if None)
        aviationstack: Enrichment service (created from config if None)
        start_sweeper: Whether to start the periodic cache sweep.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    cache = server_cache or ServerCache()
    app.config['SERVER_CACHE'] = cache
    app.config['CROWD_PREDICTOR'] = predictor or CrowdPredictor(FlightAwareClient.from_config())
    app.config['AVIATIONSTACK'] = aviationstack or AviationStackService.from_config()

    if start_sweeper:
        cache.start()
        logger.info(f'Server cache sweeper started (every {cache.sweep_interval}s)')

    # Register API blueprints
    app.register_blueprint(predict_bp)
    app.register_blueprint(enrichment_bp)
    app.register_blueprint(cache_bp)

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(UpstreamError)
    def upstream_error(e: UpstreamError):
        status = upstream_status(e)
        logger.warning(f'Upstream failure ({status}): {e}')
        return jsonify({
            'error': e.message,
            'service': e.service,
        }), status

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting CrowdCast on http://localhost:{port}')

    try:
        app.run(
            host='0.0.0.0',
            port=port,
            debug=config.debug,
            use_reloader=False,  # Reloader would start a second sweeper thread
        )
    finally:
        app.config['SERVER_CACHE'].stop()


if __name__ == '__main__':
    run_development_server()
