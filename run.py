#!/usr/bin/env python3
"""Entry point for the player-finder service."""
import os

from player_finder.app import create_app

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    print(f"Player finder starting on http://localhost:{port} (platform: {app.config['PLATFORM_API_URL']})")
    app.run(host='0.0.0.0', port=port, debug=(config_name == 'development'))
