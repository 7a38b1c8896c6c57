import logging

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from player_finder.config import config
from player_finder.errors import PlayerFinderError
from player_finder.services.lifecycle import LifecycleService
from player_finder.services.platform_gateway import PlatformGateway
from player_finder.time_utils import platform_now


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL') or 'INFO').upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app.logger.setLevel(level)


def get_gateway():
    return current_app.extensions['platform_gateway']


def get_lifecycle():
    return LifecycleService(
        get_gateway(),
        enforce_quorum=current_app.config.get('ENFORCE_QUORUM_ON_ACCEPT', True),
    )


def current_time():
    """Wall-clock "now" in the platform's zone; tests swap the clock."""
    return current_app.extensions['player_finder_clock']()


def create_app(config_name='development', gateway=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == 'dev-secret-key-change-in-prod':
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')

    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})

    if gateway is None:
        gateway = PlatformGateway(
            app.config['PLATFORM_API_URL'],
            timeout=app.config['PLATFORM_TIMEOUT_SECONDS'],
        )
    app.extensions['platform_gateway'] = gateway
    if clock is None:
        tz_name = app.config.get('PLATFORM_TIMEZONE', 'UTC')
        clock = lambda: platform_now(tz_name)  # noqa: E731
    app.extensions['player_finder_clock'] = clock

    @app.before_request
    def _enforce_origin_for_mutating_api_requests():
        if request.method in {'GET', 'HEAD', 'OPTIONS'}:
            return None
        if not request.path.startswith('/api/'):
            return None

        origin = str(request.headers.get('Origin') or '').strip()
        if not origin:
            return None

        configured_origins = _parse_allowed_origins(
            app.config.get('CORS_ALLOWED_ORIGINS', '*')
        )
        if configured_origins != '*' and origin not in configured_origins:
            return jsonify({'error': 'Invalid request origin'}), 403
        return None

    @app.errorhandler(PlayerFinderError)
    def _handle_player_finder_error(exc):
        if exc.status_code >= 500:
            app.logger.warning('%s: %s', type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    from player_finder.routes.invitations import invitations_bp
    from player_finder.routes.requests_api import requests_bp

    app.register_blueprint(requests_bp, url_prefix='/api/player-finder')
    app.register_blueprint(invitations_bp, url_prefix='/api/invitations')

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app
