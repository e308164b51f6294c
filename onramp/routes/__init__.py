import logging

from .history import history_bp
from .quotes import quotes_bp
from .rates import rates_bp
from .transactions import transactions_bp
from .webhooks import webhooks_bp

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all API blueprints."""
    for bp in (rates_bp, quotes_bp, transactions_bp, webhooks_bp, history_bp):
        app.register_blueprint(bp)
    logger.info("Registered API blueprints")
