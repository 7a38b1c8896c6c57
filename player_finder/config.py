import os


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


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    PLATFORM_API_URL = os.environ.get('PLATFORM_API_URL', 'http://localhost:8080')
    PLATFORM_TIMEOUT_SECONDS = _env_float('PLATFORM_TIMEOUT_SECONDS', 10.0)
    # Play times arrive as naive wall-clock arrays in the club's zone.
    PLATFORM_TIMEZONE = os.environ.get('PLATFORM_TIMEZONE', 'UTC')
    ENFORCE_QUORUM_ON_ACCEPT = _env_bool('ENFORCE_QUORUM_ON_ACCEPT', True)
    MAX_COMMENT_LENGTH = _env_int('MAX_COMMENT_LENGTH', 500)
    MAX_PLAYERS_NEEDED = _env_int('MAX_PLAYERS_NEEDED', 20)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key-for-player-finder-suite'
    PLATFORM_API_URL = 'http://platform.test'
    PLATFORM_TIMEOUT_SECONDS = 2.0
    PLATFORM_TIMEZONE = 'UTC'
    ENFORCE_QUORUM_ON_ACCEPT = True


class ProductionConfig(BaseConfig):
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
