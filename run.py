#!/usr/bin/env python3
"""Entry point for the PingpongHub functions server."""
import os
from pingponghub.app import create_app, socketio
from pingponghub.models import Badge
from pingponghub.services.badges import seed_badges

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

# Seed the badge catalogue on first run
if app.config.get('AUTO_SEED_BADGES'):
    with app.app_context():
        if not Badge.query.first():
            result = seed_badges()
            print(f"🏓 Seeded {result['created']} badges")

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    print(f"🏓 PingpongHub functions starting on http://localhost:{port}")
    socketio.run(
        app, host='0.0.0.0', port=port,
        debug=(config_name == 'development'),
        allow_unsafe_werkzeug=True,
    )
