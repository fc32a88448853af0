"""
Configuration settings for different environments
"""
import os
import secrets

from dotenv import load_dotenv

load_dotenv()


def _database_url():
    """Return DATABASE_URL, fixing the postgres:// scheme for SQLAlchemy 2.x"""
    url = os.environ.get('DATABASE_URL', '')
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url or 'sqlite:///incentives.db'


class Config:
    """Base configuration"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-only-' + secrets.token_hex(16)

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # API
    API_PREFIX = '/api'
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Token verification (tokens are issued by the auth service)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET') or 'dev-only-' + secrets.token_hex(32)
    JWT_ALGORITHM = 'HS256'

    # Pagination
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    # Payouts
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY', '')
    BONUS_CURRENCY = os.environ.get('BONUS_CURRENCY', 'brl')

    # SMS
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID', '')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN', '')
    TWILIO_FROM_NUMBER = os.environ.get('TWILIO_FROM_NUMBER', '')

    # Background jobs
    ENABLE_SCHEDULER = os.environ.get('ENABLE_SCHEDULER', '').lower() == 'true'

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'

    # Monitoring
    SENTRY_DSN = os.environ.get('SENTRY_DSN', '')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Timezone
    TIMEZONE = 'America/Sao_Paulo'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 20,
        'max_overflow': 40,
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}
