import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from pingponghub.config import config

db = SQLAlchemy()
socketio = SocketIO()

FUNCTION_ALLOW_HEADERS = ['authorization', 'x-client-info', 'apikey', 'content-type']
_DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-prod'


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
    level_name = str(app.config.get('LOG_LEVEL') or 'INFO').strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == _DEFAULT_SECRET_KEY:
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            raise RuntimeError('DATABASE_URL must be set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/functions/*': {
        'origins': allowed_origins,
        'allow_headers': FUNCTION_ALLOW_HEADERS,
        'methods': ['POST', 'OPTIONS'],
    }})

    from pingponghub.errors import register_error_handlers
    from pingponghub.services.notifier import init_notifier
    from pingponghub.routes.functions import functions_bp

    register_error_handlers(app)
    init_notifier(app)
    app.register_blueprint(functions_bp, url_prefix='/functions/v1')

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    with app.app_context():
        from pingponghub import models  # noqa: F401
        db.create_all()

    app.logger.info('PingpongHub functions ready (config=%s)', config_name)
    return app
