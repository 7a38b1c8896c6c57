"""WSGI entrypoint used by Gunicorn."""
import atexit
import os

from player_finder.app import create_app

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)


@atexit.register
def _close_platform_session():
    gateway = app.extensions.get('platform_gateway')
    if gateway is not None and hasattr(gateway, 'close'):
        gateway.close()
