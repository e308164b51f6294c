"""
Flask extensions initialization module.
"""

import logging

from flask import jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def init_extensions(app):
    """Initialize all Flask extensions."""
    db.init_app(app)
    migrate.init_app(app, db)
    init_cors(app)
    init_rate_limiter(app)
    logger.info("All extensions initialized successfully")
    return app


def init_cors(app):
    frontend_url = app.config.get("FRONTEND_URL")

    if not frontend_url:
        if app.config.get("ENVIRONMENT") == "production":
            raise RuntimeError("FRONTEND_URL environment variable is required in production")
        logger.warning("FRONTEND_URL not set, CORS will be disabled")
        return

    cors.init_app(
        app,
        resources={r"/*": {"origins": [o.strip() for o in frontend_url.split(",")]}},
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )


def init_rate_limiter(app):
    limiter.init_app(app)

    if not app.config.get("RATELIMIT_ENABLED", True):
        logger.info("Rate limiting disabled")
    elif app.config.get("RATELIMIT_STORAGE_URI", "memory://") == "memory://":
        logger.warning("Using in-memory rate limiting storage - NOT RECOMMENDED FOR PRODUCTION")

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        return jsonify({
            "error": "rate_limit_exceeded",
            "message": f"Rate limit exceeded: {e.description}",
        }), 429
