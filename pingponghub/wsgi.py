"""WSGI entrypoint used by Gunicorn."""
import os

from pingponghub.app import create_app
from pingponghub.models import Badge
from pingponghub.services.badges import seed_badges

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

if app.config.get('AUTO_SEED_BADGES'):
    with app.app_context():
        if not Badge.query.first():
            result = seed_badges()
            app.logger.info('Seeded %s badges', result['created'])
