from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import logging
import os

db = SQLAlchemy()


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    from config import config
    app.config.from_object(config.get(config_name, config['default']))

    logging.getLogger().setLevel(app.config['LOG_LEVEL'])

    # Sentry error monitoring (only active when SENTRY_DSN is set)
    if app.config.get('SENTRY_DSN'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
        )

    # Initialize extensions
    db.init_app(app)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    from app.extensions import limiter
    limiter.init_app(app)

    from app.errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from app.routes import (
        achievements_bp,
        bonuses_bp,
        metrics_bp,
        punishments_bp,
        rankings_bp,
        ratings_bp,
    )

    api_prefix = app.config['API_PREFIX']
    app.register_blueprint(bonuses_bp, url_prefix=f'{api_prefix}/bonuses')
    app.register_blueprint(metrics_bp, url_prefix=f'{api_prefix}/metrics')
    app.register_blueprint(punishments_bp, url_prefix=f'{api_prefix}/punishments')
    app.register_blueprint(rankings_bp, url_prefix=f'{api_prefix}/rankings')
    app.register_blueprint(achievements_bp, url_prefix=f'{api_prefix}/achievements')
    app.register_blueprint(ratings_bp, url_prefix=f'{api_prefix}/ratings')

    from app.cli import incentives_cli
    app.cli.add_command(incentives_cli)

    # Health check endpoint (exempt from rate limiting)
    @app.route('/health')
    @limiter.exempt
    def health():
        return {'status': 'healthy', 'service': 'cleaner-incentives'}, 200

    if app.config.get('ENABLE_SCHEDULER'):
        from app.scheduler import init_scheduler
        app.extensions['incentives_scheduler'] = init_scheduler(app)

    return app
