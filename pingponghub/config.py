import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    FUNCTIONS_VERIFY_JWT = _env_bool('FUNCTIONS_VERIFY_JWT', True)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    # 'socketio' broadcasts realtime events, 'log' only records them
    REALTIME_NOTIFIER = os.environ.get('REALTIME_NOTIFIER', 'socketio')
    REALTIME_LOG_BUFFER = _env_int('REALTIME_LOG_BUFFER', 100)
    MATCHMAKING_DEFAULT_RATING_RANGE = _env_float('MATCHMAKING_DEFAULT_RATING_RANGE', 100.0)
    MATCHMAKING_DEFAULT_MAX_DISTANCE_KM = _env_float('MATCHMAKING_DEFAULT_MAX_DISTANCE_KM', 10.0)
    MATCHMAKING_CANDIDATE_LIMIT = _env_int('MATCHMAKING_CANDIDATE_LIMIT', 50)
    MATCHMAKING_RESULT_LIMIT = _env_int('MATCHMAKING_RESULT_LIMIT', 10)
    CHALLENGE_EXPIRY_HOURS = _env_int('CHALLENGE_EXPIRY_HOURS', 24)
    AUTO_SEED_BADGES = _env_bool('AUTO_SEED_BADGES', True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'pingponghub_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'testing-secret-key-with-enough-bytes'
    REALTIME_NOTIFIER = 'log'
    AUTO_SEED_BADGES = False
    FUNCTIONS_VERIFY_JWT = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
