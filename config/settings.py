# config/settings.py
"""
Environment-based configuration for the Item service
"""

import os
import secrets


def _env_list(name: str, default: str = '') -> list:
    raw = os.environ.get(name, default)
    return [part.strip() for part in raw.split(',') if part.strip()]


class BaseConfig:
    """Settings shared by every environment"""

    VERSION = os.environ.get('APP_VERSION', '1.0.0')
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)

    # Database
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///items.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }
    SQLITE_BUSY_TIMEOUT = 20  # seconds

    # Email deliverability lookups
    DNS_TIMEOUT = float(os.environ.get('DNS_TIMEOUT', 5.0))
    DNS_NAMESERVERS = _env_list('DNS_NAMESERVERS')

    # Batch processing
    BATCH_MAX_CONCURRENCY = int(os.environ.get('BATCH_MAX_CONCURRENCY', 16))

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = '1000 per hour;100 per minute'
    RATELIMIT_HEADERS_ENABLED = True

    # CORS
    CORS_ORIGINS = _env_list('CORS_ORIGINS', 'http://localhost:3000')

    # Logging and monitoring
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    SLOW_REQUEST_THRESHOLD = 1000  # ms
    SLOW_QUERY_THRESHOLD = 1.0  # seconds


class DevelopmentConfig(BaseConfig):
    """Local development settings"""

    FLASK_ENV = 'development'
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(BaseConfig):
    """Settings used by the test suite"""

    FLASK_ENV = 'testing'
    TESTING = True
    DATABASE_URL = 'sqlite:///:memory:'
    RATELIMIT_ENABLED = False
    DNS_TIMEOUT = 1.0


class ProductionConfig(BaseConfig):
    """Production settings"""

    FLASK_ENV = 'production'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'WARNING')


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(config_name: str = None):
    """Return the config class for ``config_name`` (falls back to production)"""
    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    return CONFIGS.get(config_name, ProductionConfig)
