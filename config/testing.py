"""
Testing configuration for the incentives backend
"""
import os
from config.settings import Config


class TestingConfig(Config):
    """Testing configuration with isolated database and safe defaults"""

    TESTING = True
    DEBUG = False

    # Use in-memory SQLite for fast tests
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'TEST_DATABASE_URL',
        'sqlite:///:memory:'
    )

    # Fixed secret so fixtures can sign tokens
    JWT_SECRET_KEY = 'test-jwt-secret'

    # No real payouts or SMS from tests
    STRIPE_SECRET_KEY = ''
    TWILIO_ACCOUNT_SID = ''
    TWILIO_AUTH_TOKEN = ''

    # Disable rate limiting and background jobs in tests
    RATELIMIT_ENABLED = False
    ENABLE_SCHEDULER = False

    SENTRY_DSN = ''
    LOG_LEVEL = 'WARNING'

    CORS_ORIGINS = ['http://localhost:5173', 'http://localhost:3000']
