"""
Flask application factory for the NGN to crypto on-ramp.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from onramp.cli import register_cli
from onramp.config import FeatureFlags, get_config
from onramp.error_handlers import register_error_handlers
from onramp.extensions import db, init_extensions
from onramp.health import health_bp
from onramp.logging_config import setup_logging
from onramp.middleware.request_id import init_request_id_middleware
from onramp.middleware.security_headers import init_security_headers
from onramp.observability import init_observability
from onramp.routes import register_blueprints
from onramp.services.container import init_services, start_rate_sweeper
from onramp.workers.celery_app import celery_init_app
from onramp.workers.transfer_tasks import enqueue_transfer

logger = logging.getLogger(__name__)


def bootstrap_rates(app: Flask, services) -> None:
    """Load persisted rates into the cache, seeding development prices when there are none."""
    with app.app_context():
        try:
            loaded = services.rates.warm()
            if not loaded and app.config.get("SEED_DEFAULT_RATES"):
                services.rates.seed()
                logger.info("Seeded default development rates")
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Could not load persisted rates, run `flask init-db`: {e}")


def create_app(config_name: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory.

    Args:
        config_name: Configuration name (development, production, testing)
        overrides: Config values applied on top of the selected class

    Raises:
        ConfigurationError: If configuration validation fails
    """
    app = Flask(__name__)

    # Configuration (fail fast)
    config = get_config(config_name)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)
    app.config.setdefault("FEATURE_FLAGS", FeatureFlags())
    config.validate(app.config)

    setup_logging(app)
    logger.info(f"Starting application in {app.config.get('ENVIRONMENT')} mode")

    # Extensions and middleware
    init_extensions(app)
    init_request_id_middleware(app)
    init_security_headers(app)
    register_error_handlers(app)
    init_observability(app)

    # Background work and services
    celery_init_app(app)
    services = init_services(app, dispatch=enqueue_transfer)

    # Routes and commands
    register_blueprints(app)
    app.register_blueprint(health_bp)
    register_cli(app)

    if not app.testing:
        bootstrap_rates(app, services)
        start_rate_sweeper(app, services)

    logger.info("Application initialization completed")
    return app
