"""
Flask application factory.

Creates and configures the Flask app, wires the scoring config loader and
engine, registers all blueprints.
"""
import importlib

from flask import Flask


def create_app(config_loader=None, redis_client=None):
    """Create and configure the Flask application."""
    from teedclub.config import ADMIN_TOKEN, SECRET_KEY
    from teedclub.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY
    app.config['ADMIN_TOKEN'] = ADMIN_TOKEN

    # Circuit breakers for outbound calls
    if redis_client is None:
        from teedclub.extensions import redis_client
    from teedclub.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Scoring config cache lives on the app, not in a module global
    from teedclub.waitlist.config_loader import build_config_loader
    from teedclub.waitlist.scoring import ScoringEngine
    if config_loader is None:
        config_loader = build_config_loader(redis_client=redis_client)
    app.extensions['scoring_config_loader'] = config_loader
    app.extensions['scoring_engine'] = ScoringEngine(config_loader)

    # Register blueprints
    from teedclub.routes.admin import bp as admin_bp
    from teedclub.routes.health import bp as health_bp
    from teedclub.routes.waitlist import bp as waitlist_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(waitlist_bp)
    app.register_blueprint(admin_bp)

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic; there is no init_db() call.
    importlib.import_module('teedclub.models.application')
    importlib.import_module('teedclub.models.equipment')
    importlib.import_module('teedclub.models.feature_flags')
    importlib.import_module('teedclub.models.invite_code')
    importlib.import_module('teedclub.models.profile')

    return app
