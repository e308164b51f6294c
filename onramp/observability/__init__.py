import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration

from .metrics import register_metrics


def init_observability(app):
    register_metrics(app)
    setup_sentry(app)


def setup_sentry(app):
    """Initialize Sentry error tracking"""
    sentry_dsn = app.config.get("SENTRY_DSN")

    if sentry_dsn and app.config.get("ENVIRONMENT") == "production":
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment="production",
            send_default_pii=False,
        )
        app.logger.info("Sentry error tracking initialized")
